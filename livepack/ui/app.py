from __future__ import annotations

import sys
import traceback

from PySide6.QtWidgets import QApplication, QMessageBox

from livepack.packaging.orchestrator import BuildOrchestrator, BuildResult
from livepack.ui.progress_dialog import BuildProgressDialog


def run_with_progress(orchestrator: BuildOrchestrator, title: str = "Updating archives...") -> BuildResult:
    """Run a build behind a progress dialog; re-raises the build's exception."""
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv[:1])

    def work(progress):
        orchestrator.set_progress_callback(progress)
        try:
            return orchestrator.run()
        finally:
            orchestrator.set_progress_callback(None)

    dlg = BuildProgressDialog(title, work)
    dlg.exec()
    if dlg.error is not None:
        show_error(dlg.error)
        raise dlg.error
    return dlg.result_value


def show_error(error: BaseException) -> None:
    details = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    QMessageBox.critical(
        None,
        "livepack: build failed",
        f"An error occurred:\n{error}\n\nFull details:\n{details}",
    )

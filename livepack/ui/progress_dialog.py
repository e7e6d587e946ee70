from __future__ import annotations

from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QThread, Qt, Signal, Slot
from PySide6.QtWidgets import (
    QDialog,
    QLabel,
    QProgressBar,
    QPushButton,
    QVBoxLayout,
)

Work = Callable[[Callable[[int, str], None]], Any]


class _Worker(QObject):
    progressChanged = Signal(int, str)
    succeeded = Signal(object)
    failed = Signal(object)

    def __init__(self, work: Work) -> None:
        super().__init__()
        self._work = work

    @Slot()
    def run(self) -> None:
        try:
            result = self._work(self.progressChanged.emit)
        except Exception as e:  # noqa: BLE001 - handed to the GUI thread
            self.failed.emit(e)
        else:
            self.succeeded.emit(result)


class BuildProgressDialog(QDialog):
    """Modal progress window running ``work`` on a background thread.

    ``work`` receives a ``progress(percent, message)`` callback. Cancel only
    marks the dialog as cancelling; the build itself is never interrupted.
    """

    def __init__(self, title: str, work: Work, cancelable: bool = False, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setModal(True)
        self.setMinimumWidth(360)
        self.setWindowFlag(Qt.WindowType.WindowCloseButtonHint, False)

        self.result_value: Any = None
        self.error: Optional[BaseException] = None
        self.cancel_requested = False
        self._running = False

        layout = QVBoxLayout(self)
        self._label = QLabel(title)
        self._bar = QProgressBar()
        self._bar.setRange(0, 100)
        self._cancel = QPushButton("Cancel")
        self._cancel.setVisible(cancelable)
        self._cancel.clicked.connect(self._on_cancel)
        layout.addWidget(self._label)
        layout.addWidget(self._bar)
        layout.addWidget(self._cancel)

        self._thread = QThread(self)
        self._worker = _Worker(work)
        self._worker.moveToThread(self._thread)
        self._thread.started.connect(self._worker.run)
        self._worker.progressChanged.connect(self._on_progress)
        self._worker.succeeded.connect(self._on_succeeded)
        self._worker.failed.connect(self._on_failed)

    def exec(self) -> int:  # noqa: A003
        self._running = True
        self._thread.start()
        return super().exec()

    def _finish(self) -> None:
        self._running = False
        self._thread.quit()
        self._thread.wait()

    @Slot(int, str)
    def _on_progress(self, percent: int, message: str) -> None:
        self._bar.setValue(max(0, min(100, int(percent))))
        if message:
            self._label.setText(message)

    @Slot(object)
    def _on_succeeded(self, result: Any) -> None:
        self.result_value = result
        self._finish()
        self.accept()

    @Slot(object)
    def _on_failed(self, error: BaseException) -> None:
        self.error = error
        self._finish()
        self.reject()

    def _on_cancel(self) -> None:
        self.cancel_requested = True
        self._cancel.setEnabled(False)
        self._cancel.setText("Cancelling")

    def reject(self) -> None:
        # Escape must not close the window while the build is still running
        if self._running:
            return
        super().reject()

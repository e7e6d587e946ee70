"""
Staging Area - 打包暂存目录

Layout:
    FPKTemp/
    ├── art/    # packer input, mirrors the art tree layout
    └── out/    # packer output

The directory is recreated at the start of every build attempt and removed at
the end, so no staged state survives between runs.
"""
from __future__ import annotations

import logging
import os
import shutil
import stat
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from livepack.errors import StagingError

logger = logging.getLogger(__name__)


def _clear_readonly(func, path, _exc):
    # read-only checkouts block deletion on Windows
    os.chmod(path, stat.S_IWRITE)
    func(path)


def remove_tree(path: Path) -> None:
    if not path.exists():
        return
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_clear_readonly)
    else:
        shutil.rmtree(path, onerror=_clear_readonly)


class StagingArea:
    """Owns the scratch directory used as packer input and output."""

    def __init__(self, root: Path, art_root: Path):
        self.root = Path(root)
        self.art_root = Path(art_root)

    @property
    def input_dir(self) -> Path:
        return self.root / 'art'

    @property
    def output_dir(self) -> Path:
        return self.root / 'out'

    def reset(self) -> None:
        """Delete any previous contents and recreate the directory empty."""
        try:
            if self.root.exists():
                logger.info("Removing stale staging directory %s", self.root)
                remove_tree(self.root)
            self.input_dir.mkdir(parents=True)
            self.output_dir.mkdir(parents=True)
        except OSError as e:
            raise StagingError(f"Cannot reset staging directory {self.root}", step="staging", detail=str(e)) from e

    def stage_file(self, source: Path) -> Optional[Path]:
        """Copy ``source`` into the staging input, keeping its art-relative layout.

        Returns the staged path, or ``None`` when the source no longer exists.
        """
        source = Path(source)
        try:
            rel = source.relative_to(self.art_root)
        except ValueError:
            raise StagingError(f"{source} is not inside the art tree {self.art_root}", step="staging")
        if not source.is_file():
            logger.debug("Skipping missing file %s", source)
            return None
        target = self.input_dir / rel
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as e:
            raise StagingError(f"Cannot stage {rel.as_posix()}", step="staging", detail=str(e)) from e
        return target

    def stage_files(self, sources: Iterable[Path]) -> int:
        count = 0
        for source in sources:
            if self.stage_file(source) is not None:
                count += 1
        logger.info("Staged %d file(s)", count)
        return count

    def stage_tree(self) -> int:
        """Stage every file of the art tree."""
        if not self.art_root.is_dir():
            raise StagingError(f"Art directory not found: {self.art_root}", step="staging")
        try:
            files = sorted(p for p in self.art_root.rglob('*') if p.is_file())
        except OSError as e:
            raise StagingError(f"Cannot scan {self.art_root}", step="staging", detail=str(e)) from e
        return self.stage_files(files)

    def teardown(self) -> None:
        try:
            remove_tree(self.root)
        except OSError as e:
            raise StagingError(f"Cannot remove staging directory {self.root}", step="cleanup", detail=str(e)) from e

    @contextmanager
    def session(self) -> Iterator['StagingArea']:
        """Reset on entry, tear down on exit whatever happened in between.

        A failed teardown never masks the outcome of the work inside: it is
        logged, and the original exception (if any) propagates.
        """
        self.reset()
        try:
            yield self
        except BaseException:
            try:
                self.teardown()
            except StagingError as e:
                logger.error("Staging cleanup failed: %s", e)
            raise
        else:
            # the build already succeeded; leftovers are wiped by the next reset
            try:
                self.teardown()
            except StagingError as e:
                logger.warning("Staging cleanup failed: %s", e)


__all__ = [
    'StagingArea',
    'remove_tree',
]

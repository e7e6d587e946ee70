"""
Snapshot Token - identity of the last successfully packed state

Record format (plain text, one entry per line):

    <revision>
    <modified path 1>
    <modified path 2>
    ...

An empty record is treated exactly like a missing one.

The record's modification time is set to the moment the build started
gathering files. It tells a file that was already dirty when the token was
recorded apart from one edited again afterwards.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Tuple

from .asset_paths import AssetPath, unique_paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotToken:
    """Revision plus the local modifications present when it was recorded."""
    revision: str = ""
    modified_paths: Tuple[str, ...] = field(default_factory=tuple)
    # epoch seconds; kept as the record's mtime, not as a line
    recorded_at: Optional[float] = field(default=None, compare=False)

    def __post_init__(self):
        # dedupe by asset identity, keep captured order
        paths = tuple(p.path for p in unique_paths(self.modified_paths))
        object.__setattr__(self, 'revision', (self.revision or "").strip())
        object.__setattr__(self, 'modified_paths', paths)

    @property
    def is_valid(self) -> bool:
        return bool(self.revision)

    def path_set(self) -> FrozenSet[AssetPath]:
        return frozenset(AssetPath(p) for p in self.modified_paths)

    @classmethod
    def create(
        cls,
        revision: str,
        modified: Iterable[str | AssetPath],
        recorded_at: Optional[float] = None,
    ) -> 'SnapshotToken':
        paths = sorted(unique_paths(modified))
        return cls(revision=revision, modified_paths=tuple(p.path for p in paths), recorded_at=recorded_at)

    def to_lines(self) -> list[str]:
        return [self.revision, *self.modified_paths]

    @classmethod
    def from_lines(cls, lines: Iterable[str], recorded_at: Optional[float] = None) -> Optional['SnapshotToken']:
        lines = [ln.strip() for ln in lines]
        if not lines:
            return None
        return cls(
            revision=lines[0],
            modified_paths=tuple(ln for ln in lines[1:] if ln),
            recorded_at=recorded_at,
        )


class TokenStore:
    """Loads and persists the snapshot token record."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[SnapshotToken]:
        """Read the token; ``None`` when missing, empty or unreadable."""
        if not self.path.exists():
            logger.info("No snapshot token at %s", self.path)
            return None
        try:
            text = self.path.read_text(encoding='utf-8-sig')
            recorded_at = self.path.stat().st_mtime
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Snapshot token at %s is unreadable (%s), rebuilding", self.path, e)
            return None
        token = SnapshotToken.from_lines(text.splitlines(), recorded_at=recorded_at)
        if token is None:
            logger.warning("Snapshot token at %s is invalid, rebuilding", self.path)
            return None
        if not token.is_valid:
            logger.warning("Snapshot token at %s has no revision, rebuilding", self.path)
        return token

    def save(self, token: SnapshotToken) -> None:
        """Replace the record with ``token``."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + '.tmp')
        tmp.write_text('\n'.join(token.to_lines()) + '\n', encoding='utf-8')
        if token.recorded_at is not None:
            os.utime(tmp, (token.recorded_at, token.recorded_at))
        os.replace(tmp, self.path)
        logger.info("Saved snapshot token %s (%d modified paths)", token.revision, len(token.modified_paths))

    def clear(self) -> bool:
        """Delete the record so the next build is a full one."""
        if not self.path.exists():
            return False
        self.path.unlink()
        logger.info("Removed snapshot token %s", self.path)
        return True


__all__ = [
    'SnapshotToken',
    'TokenStore',
]

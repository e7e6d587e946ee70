"""
Change Resolver - 变更文件计算

Reconciles a snapshot token with the current working tree. Sources of change:

- revision diff: files differing between the token revision and HEAD
- dirty files: tracked files edited in the working tree but not committed
- untracked files: new files git does not know about yet
- carried paths: the token's own modified paths, which were never committed
  and therefore never show up in a revision-to-revision diff

The result is their deduplicated union, recomputed from scratch every run.

One exception keeps an unchanged tree a no-op: while the token still points
at HEAD, a path that is locally modified now and was already locally modified
when the token was recorded is skipped unless its file was written after the
token. A carried path that is no longer modified (reverted) stays changed.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set

from livepack.adapters.vcs import IVersionControl
from .asset_paths import AssetPath, iter_subtree_paths, unique_paths
from livepack.errors import UnusableTokenError, VcsUnavailableError
from .snapshot_token import SnapshotToken

logger = logging.getLogger(__name__)


class ChangeResolver:
    """Computes changed asset paths under one art subtree."""

    def __init__(self, vcs: IVersionControl, art_root: Path, subtree: str):
        self.vcs = vcs
        self.art_root = Path(art_root)
        self.subtree = subtree.strip('/')

    def _in_subtree(self, paths: Iterable[str]) -> List[AssetPath]:
        return list(iter_subtree_paths(paths, self.subtree))

    def local_modifications(self, revision: str) -> Set[AssetPath]:
        """Dirty tracked paths relative to ``revision`` plus untracked paths."""
        dirty = self.vcs.diff_paths(revision, subtree=self.subtree)
        untracked = self.vcs.untracked_paths(subtree=self.subtree)
        return set(unique_paths(self._in_subtree(sorted(dirty) + sorted(untracked))))

    def resolve_full_snapshot_modifications(self, root_revision: str) -> Set[AssetPath]:
        """Modification set recorded in a brand-new token."""
        mods = self.local_modifications(root_revision)
        logger.info("Found %d locally modified art file(s) at %s", len(mods), root_revision)
        return mods

    def resolve_changes_since_token(self, token: SnapshotToken, head_revision: str) -> Set[AssetPath]:
        """Everything that must go into a patch built on top of ``token``.

        Raises UnusableTokenError when version control cannot answer for the
        token's revision; the caller then rebuilds from scratch.
        """
        if not token.is_valid:
            raise UnusableTokenError("Snapshot token has no revision", step="resolve")
        try:
            committed = set()
            if token.revision != head_revision:
                committed = self.vcs.diff_paths(token.revision, head_revision, subtree=self.subtree)
            dirty = self.vcs.diff_paths(head_revision, subtree=self.subtree)
            untracked = self.vcs.untracked_paths(subtree=self.subtree)
        except VcsUnavailableError as e:
            raise UnusableTokenError(
                f"Cannot diff against token revision {token.revision}",
                step="resolve",
                detail=str(e),
            ) from e

        found = self._in_subtree(sorted(committed) + sorted(dirty) + sorted(untracked))
        if token.revision == head_revision:
            changed = self._changes_at_token_revision(token, found)
        else:
            changed = set(unique_paths([*found, *token.modified_paths]))
        logger.info(
            "Resolved %d changed art file(s) since %s (%d committed, %d dirty, %d untracked, %d carried)",
            len(changed), token.revision, len(committed), len(dirty), len(untracked), len(token.modified_paths),
        )
        return changed

    def _touched_since(self, ap: AssetPath, recorded_at: Optional[float]) -> bool:
        if recorded_at is None:
            return False
        try:
            return (self.art_root / ap.path).stat().st_mtime > recorded_at
        except OSError:
            # gone; nothing left to stage
            return False

    def _changes_at_token_revision(self, token: SnapshotToken, local: List[AssetPath]) -> Set[AssetPath]:
        carried = token.path_set()
        local_set = set(unique_paths(local))
        # reverted since the token: the deployed archives hold the modified version
        changed = set(carried - local_set)
        for ap in local_set:
            if ap not in carried or self._touched_since(ap, token.recorded_at):
                changed.add(ap)
        return changed

    def existing_files(self, paths: Iterable[AssetPath]) -> List[Path]:
        """Absolute source paths for the entries that still exist on disk."""
        out: List[Path] = []
        for ap in sorted(paths):
            source = self.art_root / ap.path
            if source.is_file():
                out.append(source)
            else:
                logger.debug("Dropping %s: no longer exists", ap)
        return out


__all__ = [
    'ChangeResolver',
]

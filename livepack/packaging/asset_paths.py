"""Asset path identity.

The art tree lives on a case-insensitive filesystem and paths arrive from
several sources (git output, the token file, directory walks) with mixed
separator styles. Two asset paths are the same asset iff their normalised keys
match; the first spelling seen is kept for filesystem access.
"""
from __future__ import annotations

from typing import Iterable, Iterator, List, Optional


def _clean(path: str) -> str:
    # forward slashes, no leading ./ or /, no doubled separators; case kept
    posix = path.strip().replace('\\', '/')
    while posix.startswith('./'):
        posix = posix[2:]
    posix = posix.lstrip('/')
    while '//' in posix:
        posix = posix.replace('//', '/')
    return posix


def normalize_key(path: str) -> str:
    """Canonical comparison key: forward slashes, lower case, no leading ``./`` or ``/``."""
    return _clean(path).lower()


class AssetPath:
    """A path relative to the root of the tracked art tree."""

    __slots__ = ('_path', '_key')

    def __init__(self, path: str):
        self._path = _clean(path)
        self._key = self._path.lower()

    @property
    def path(self) -> str:
        """Original spelling with forward slashes."""
        return self._path

    @property
    def key(self) -> str:
        return self._key

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AssetPath):
            return self._key == other._key
        if isinstance(other, str):
            return self._key == normalize_key(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._key)

    def __lt__(self, other: 'AssetPath') -> bool:
        return self._key < other._key

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"AssetPath({self._path!r})"


def strip_subtree(path: str, subtree: str) -> Optional[str]:
    """Make a repository-relative path relative to ``subtree``.

    Returns ``None`` when ``path`` does not live under ``subtree``. The prefix
    match is case-insensitive and separator-agnostic.
    """
    prefix = normalize_key(subtree).rstrip('/')
    posix = _clean(path)
    if not prefix:
        return posix or None
    if not normalize_key(posix).startswith(prefix + '/'):
        return None
    rest = posix[len(prefix) + 1:]
    return rest or None


def unique_paths(paths: Iterable[str | AssetPath]) -> List[AssetPath]:
    """Deduplicate by asset identity, keeping first-seen order and spelling."""
    seen: set = set()
    out: List[AssetPath] = []
    for p in paths:
        ap = p if isinstance(p, AssetPath) else AssetPath(p)
        if not ap.key or ap in seen:
            continue
        seen.add(ap)
        out.append(ap)
    return out


def iter_subtree_paths(paths: Iterable[str], subtree: str) -> Iterator[AssetPath]:
    """Yield the members of ``paths`` under ``subtree`` as root-relative asset paths."""
    for p in paths:
        rel = strip_subtree(p, subtree)
        if rel:
            yield AssetPath(rel)


__all__ = [
    'AssetPath',
    'normalize_key',
    'strip_subtree',
    'unique_paths',
    'iter_subtree_paths',
]

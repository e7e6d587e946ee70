"""
Deployment - 替换线上素材包

The only step that mutates the live assets directory. Old members of a family
are deleted immediately before the freshly built replacements are moved in, so
a failure earlier in the pipeline never touches deployed archives.
"""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, List

from livepack.errors import DeployError

logger = logging.getLogger(__name__)


def family_members(live_dir: Path, family_prefix: str, extension: str = ".fpk") -> List[Path]:
    """Archives in ``live_dir`` named ``<family_prefix>*<extension>`` (case-insensitive)."""
    live_dir = Path(live_dir)
    if not live_dir.is_dir():
        return []
    prefix = family_prefix.lower()
    ext = extension.lower()
    return sorted(
        p for p in live_dir.iterdir()
        if p.is_file() and p.name.lower().startswith(prefix) and p.name.lower().endswith(ext)
    )


def clear_family(live_dir: Path, family_prefix: str, extension: str = ".fpk") -> List[Path]:
    """Delete every deployed member of a family; returns what was removed."""
    removed: List[Path] = []
    for path in family_members(live_dir, family_prefix, extension):
        try:
            path.unlink()
        except OSError as e:
            raise DeployError(f"Cannot delete old archive {path.name}", step="deploy", detail=str(e)) from e
        removed.append(path)
    if removed:
        logger.info("Deleted %d old %s archive(s)", len(removed), family_prefix)
    return removed


def deploy(
    built_archives: Iterable[Path],
    live_dir: Path,
    family_prefix: str,
    extension: str = ".fpk",
) -> List[Path]:
    """Replace the ``family_prefix`` family in ``live_dir`` with ``built_archives``.

    Archives are moved, not copied. Returns the deployed paths.
    """
    built = [Path(p) for p in built_archives]
    missing = [p for p in built if not p.is_file()]
    if not built or missing:
        raise DeployError(
            f"Nothing verified to deploy for {family_prefix}",
            step="deploy",
            detail=", ".join(str(p) for p in missing) or None,
        )
    live_dir = Path(live_dir)
    try:
        live_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DeployError(f"Cannot create {live_dir}", step="deploy", detail=str(e)) from e

    clear_family(live_dir, family_prefix, extension)

    deployed: List[Path] = []
    for src in built:
        dst = live_dir / src.name
        try:
            shutil.move(str(src), str(dst))
        except OSError as e:
            raise DeployError(f"Cannot move {src.name} into {live_dir}", step="deploy", detail=str(e)) from e
        deployed.append(dst)
    logger.info("Deployed %d %s archive(s) to %s", len(deployed), family_prefix, live_dir)
    return deployed


__all__ = [
    'family_members',
    'clear_family',
    'deploy',
]

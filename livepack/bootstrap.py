from __future__ import annotations

"""Locate the repository root once, before anything else runs.

The tool ships inside the repository's ``Tools`` directory. When no root is
given explicitly we look at where the executable lives, then at the current
directory; whichever is named ``Tools`` (any case) has the root as its parent.
Everything downstream receives the root as plain configuration.
"""

import os
import sys
from pathlib import Path

from livepack.errors import ConfigError

TOOLS_DIR_NAME = "tools"


def _base_dir() -> Path:
    # frozen executables live next to sys.executable
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(sys.argv[0]).resolve().parent if sys.argv and sys.argv[0] else Path.cwd()


def discover_root(exe_dir: Path | None = None, cwd: Path | None = None) -> Path:
    exe_dir = Path(exe_dir) if exe_dir is not None else _base_dir()
    cwd = Path(cwd) if cwd is not None else Path(os.getcwd())
    for cand in (exe_dir, cwd):
        if cand.name.lower() == TOOLS_DIR_NAME:
            return cand.resolve().parent
    raise ConfigError(
        "Expected to be directly inside the Tools directory, or run with that as the working directory",
        step="bootstrap",
        detail="Pass --root to point at the repository explicitly",
    )


__all__ = [
    "discover_root",
]

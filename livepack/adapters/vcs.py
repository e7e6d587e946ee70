from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional, Set

from livepack.errors import VcsUnavailableError

logger = logging.getLogger(__name__)


class IVersionControl(ABC):
    """Read-only view of the repository holding the art tree.

    Path results are repository-relative with forward slashes. Revision
    identifiers are opaque strings.
    """

    @abstractmethod
    def current_revision(self) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def diff_paths(self, base: str, target: Optional[str] = None, *, subtree: str = "") -> Set[str]:  # pragma: no cover - interface
        """Paths differing between ``base`` and ``target`` (working tree when ``None``)."""
        raise NotImplementedError

    @abstractmethod
    def untracked_paths(self, *, subtree: str = "") -> Set[str]:  # pragma: no cover - interface
        raise NotImplementedError


Runner = Callable[..., subprocess.CompletedProcess]


class GitVersionControl(IVersionControl):
    """``git`` command-line backend.

    Output is requested NUL-separated (``-z``) so paths with spaces or non-ASCII
    characters come back verbatim.
    """

    def __init__(self, repo_root: Path, executable: str = "git", runner: Runner | None = None) -> None:
        self.repo_root = Path(repo_root)
        self.executable = executable
        self._run = runner or subprocess.run

    def _git(self, *args: str) -> str:
        cmd = [self.executable, "--no-pager", "-c", "core.quotepath=off", *args]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            res = self._run(
                cmd,
                cwd=str(self.repo_root),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except FileNotFoundError as e:
            raise VcsUnavailableError(
                f"git executable not found: {self.executable}",
                step="vcs",
                detail="Install git or set git_executable in livepack.json",
            ) from e
        except OSError as e:
            raise VcsUnavailableError(f"Cannot run git in {self.repo_root}", step="vcs", detail=str(e)) from e
        if res.returncode != 0:
            raise VcsUnavailableError(
                f"git {args[0]} failed with exit code {res.returncode}; are you sure {self.repo_root} is a git repository?",
                step="vcs",
                detail=(res.stderr or "").strip() or None,
            )
        return res.stdout or ""

    @staticmethod
    def _split(out: str) -> List[str]:
        return [p for p in out.replace("\n", "\0").split("\0") if p.strip()]

    @staticmethod
    def _pathspec(subtree: str) -> List[str]:
        return ["--", subtree.strip("/") + "/"] if subtree.strip("/") else []

    def current_revision(self) -> str:
        rev = self._git("rev-parse", "HEAD").strip()
        if not rev:
            raise VcsUnavailableError("git rev-parse HEAD returned nothing", step="vcs")
        return rev

    def diff_paths(self, base: str, target: Optional[str] = None, *, subtree: str = "") -> Set[str]:
        revs = [base] if target is None else [base, target]
        out = self._git("diff", "--name-only", "-z", *revs, *self._pathspec(subtree))
        return set(self._split(out))

    def untracked_paths(self, *, subtree: str = "") -> Set[str]:
        out = self._git("ls-files", "--others", "-z", *self._pathspec(subtree))
        return set(self._split(out))

"""Shared fakes for the version-control and packer collaborators."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from livepack.adapters.packer import IArchivePacker, PackRequest, PackResult
from livepack.adapters.vcs import IVersionControl
from livepack.errors import PackerError, VcsUnavailableError
from livepack.packaging.build_config import BuildConfig


class FakeVcs(IVersionControl):
    """In-memory repository: canned revision, diffs and untracked files."""

    def __init__(self, head: str = "rev2") -> None:
        self.head = head
        self.diffs: Dict[Tuple[str, Optional[str]], Set[str]] = {}
        self.untracked: Set[str] = set()
        self.bad_revisions: Set[str] = set()
        self.unavailable = False
        self.calls: List[tuple] = []

    def _check(self, *revs: Optional[str]) -> None:
        if self.unavailable:
            raise VcsUnavailableError("not a git repository", step="vcs")
        for rev in revs:
            if rev in self.bad_revisions:
                raise VcsUnavailableError(f"bad revision {rev}", step="vcs")

    def current_revision(self) -> str:
        self.calls.append(("rev-parse",))
        self._check()
        return self.head

    def diff_paths(self, base, target=None, *, subtree=""):
        self.calls.append(("diff", base, target, subtree))
        self._check(base, target)
        return set(self.diffs.get((base, target), set()))

    def untracked_paths(self, *, subtree=""):
        self.calls.append(("untracked", subtree))
        self._check()
        return set(self.untracked)


class FakePacker(IArchivePacker):
    """Writes ``<family>N<ext>`` archives and remembers what was staged."""

    def __init__(self, archive_count: int = 1) -> None:
        self.archive_count = archive_count
        self.fail = False
        self.requests: List[PackRequest] = []
        self.packed: List[List[str]] = []

    def build_archive(self, request: PackRequest) -> PackResult:
        self.requests.append(request)
        staged = sorted(
            p.relative_to(request.input_dir).as_posix()
            for p in request.input_dir.rglob("*") if p.is_file()
        )
        self.packed.append(staged)
        if self.fail:
            raise PackerError("PakBuild exited with code 1", step="pack")
        request.output_dir.mkdir(parents=True, exist_ok=True)
        archives = []
        for i in range(self.archive_count):
            out = request.output_dir / f"{request.family}{i}{request.extension}"
            out.write_bytes(f"{request.family}:{','.join(staged)}".encode("utf-8"))
            archives.append(out)
        return PackResult(archives=archives)


def write_file(path: Path, content: str = "data") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def repo(tmp_path: Path) -> BuildConfig:
    """A repository root with UnpackedArt/, Assets/ and Tools/."""
    cfg = BuildConfig(root_dir=tmp_path)
    cfg.art_path.mkdir()
    cfg.assets_path.mkdir()
    cfg.tools_path.mkdir()
    write_file(cfg.art_path / "units" / "a.png", "a")
    write_file(cfg.art_path / "units" / "b.png", "b")
    write_file(cfg.art_path / "c.png", "c")
    return cfg


@pytest.fixture
def make_file():
    return write_file


@pytest.fixture
def vcs() -> FakeVcs:
    return FakeVcs()


@pytest.fixture
def packer() -> FakePacker:
    return FakePacker()

"""
Tests for the git and PakBuild command-line adapters
"""
import subprocess
import pytest
from pathlib import Path


class RecordingRunner:
    """Stands in for subprocess.run and replays canned results."""

    def __init__(self, results=None, raises=None):
        self.results = list(results or [])
        self.raises = raises
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if self.raises is not None:
            raise self.raises
        if self.results:
            return self.results.pop(0)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


def _done(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


class TestGitVersionControl:
    """git command lines and output parsing."""

    def test_current_revision(self, tmp_path):
        from livepack.adapters.vcs import GitVersionControl

        runner = RecordingRunner([_done("777820db1a\n")])
        git = GitVersionControl(tmp_path, runner=runner)

        assert git.current_revision() == "777820db1a"
        cmd, kwargs = runner.calls[0]
        assert cmd[-2:] == ["rev-parse", "HEAD"]
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["check"] is False

    def test_diff_between_revisions(self, tmp_path):
        from livepack.adapters.vcs import GitVersionControl

        runner = RecordingRunner([_done("UnpackedArt/a b.png\0UnpackedArt/素材.png\0")])
        git = GitVersionControl(tmp_path, runner=runner)

        paths = git.diff_paths("rev1", "rev2", subtree="UnpackedArt")
        assert paths == {"UnpackedArt/a b.png", "UnpackedArt/素材.png"}
        cmd, _ = runner.calls[0]
        assert cmd[cmd.index("diff"):] == ["diff", "--name-only", "-z", "rev1", "rev2", "--", "UnpackedArt/"]

    def test_diff_against_working_tree(self, tmp_path):
        from livepack.adapters.vcs import GitVersionControl

        runner = RecordingRunner([_done("")])
        git = GitVersionControl(tmp_path, runner=runner)

        assert git.diff_paths("rev1") == set()
        cmd, _ = runner.calls[0]
        assert cmd[cmd.index("diff"):] == ["diff", "--name-only", "-z", "rev1"]

    def test_untracked(self, tmp_path):
        from livepack.adapters.vcs import GitVersionControl

        runner = RecordingRunner([_done("UnpackedArt/new.png\nUnpackedArt/other.png\n")])
        git = GitVersionControl(tmp_path, runner=runner)

        assert git.untracked_paths(subtree="UnpackedArt/") == {"UnpackedArt/new.png", "UnpackedArt/other.png"}
        cmd, _ = runner.calls[0]
        assert cmd[cmd.index("ls-files"):] == ["ls-files", "--others", "-z", "--", "UnpackedArt/"]

    def test_nonzero_exit_is_unavailable(self, tmp_path):
        from livepack.adapters.vcs import GitVersionControl
        from livepack.errors import VcsUnavailableError

        runner = RecordingRunner([_done(returncode=128, stderr="fatal: not a git repository")])
        git = GitVersionControl(tmp_path, runner=runner)

        with pytest.raises(VcsUnavailableError) as info:
            git.current_revision()
        assert "not a git repository" in str(info.value)
        assert info.value.step == "vcs"

    def test_missing_executable_is_unavailable(self, tmp_path):
        from livepack.adapters.vcs import GitVersionControl
        from livepack.errors import VcsUnavailableError

        git = GitVersionControl(tmp_path, executable="no-such-git", runner=RecordingRunner(raises=FileNotFoundError()))
        with pytest.raises(VcsUnavailableError):
            git.untracked_paths()

    def test_empty_revision_is_unavailable(self, tmp_path):
        from livepack.adapters.vcs import GitVersionControl
        from livepack.errors import VcsUnavailableError

        git = GitVersionControl(tmp_path, runner=RecordingRunner([_done("\n")]))
        with pytest.raises(VcsUnavailableError):
            git.current_revision()


class TestPakBuildPacker:
    """PakBuild invocation and archive collection."""

    def _request(self, tmp_path, family="C2CPatch"):
        from livepack.adapters.packer import PackRequest

        return PackRequest(
            input_dir=tmp_path / "FPKTemp" / "art",
            output_dir=tmp_path / "FPKTemp" / "out",
            family=family,
        )

    def test_command_line(self, tmp_path):
        from livepack.adapters.packer import PakBuildPacker

        tools = tmp_path / "Tools"
        tools.mkdir()
        (tools / "PakBuild.exe").write_bytes(b"")
        packer = PakBuildPacker(tools)

        cmd = packer.command_for(self._request(tmp_path, "C2C"))
        assert cmd == [
            str(tools / "PakBuild.exe"),
            f"/I={tmp_path / 'FPKTemp' / 'art'}",
            f"/O={tmp_path / 'FPKTemp' / 'out'}",
            "/F",
            "/S=256",
            "/R=C2C",
        ]

    def test_successful_build_collects_archives(self, tmp_path):
        from livepack.adapters.packer import PakBuildPacker

        request = self._request(tmp_path)

        def runner(cmd, **kwargs):
            (request.output_dir / "C2CPatch1.fpk").write_bytes(b"1")
            (request.output_dir / "C2CPatch0.FPK").write_bytes(b"0")
            (request.output_dir / "build.log").write_text("log", encoding="utf-8")
            return _done("packed 2 files")

        result = PakBuildPacker(tmp_path, runner=runner).build_archive(request)
        assert [p.name for p in result.archives] == ["C2CPatch0.FPK", "C2CPatch1.fpk"]
        assert result.output == "packed 2 files"

    def test_runs_from_tools_dir(self, tmp_path):
        from livepack.adapters.packer import PakBuildPacker
        from livepack.errors import PackerError

        runner = RecordingRunner([_done()])
        with pytest.raises(PackerError):
            PakBuildPacker(tmp_path / "Tools", runner=runner).build_archive(self._request(tmp_path))
        _, kwargs = runner.calls[0]
        assert kwargs["cwd"] == str(tmp_path / "Tools")

    def test_nonzero_exit(self, tmp_path):
        from livepack.adapters.packer import PakBuildPacker
        from livepack.errors import PackerError

        runner = RecordingRunner([_done(returncode=3, stderr="bad input")])
        with pytest.raises(PackerError) as info:
            PakBuildPacker(tmp_path, runner=runner).build_archive(self._request(tmp_path))
        assert info.value.detail == "bad input"
        assert "code 3" in info.value.message

    def test_no_output_is_failure(self, tmp_path):
        from livepack.adapters.packer import PakBuildPacker
        from livepack.errors import PackerError

        with pytest.raises(PackerError):
            PakBuildPacker(tmp_path, runner=RecordingRunner([_done()])).build_archive(self._request(tmp_path))

    def test_missing_executable(self, tmp_path):
        from livepack.adapters.packer import PakBuildPacker
        from livepack.errors import PackerError

        runner = RecordingRunner(raises=FileNotFoundError())
        with pytest.raises(PackerError) as info:
            PakBuildPacker(tmp_path, runner=runner).build_archive(self._request(tmp_path))
        assert info.value.step == "pack"

from __future__ import annotations

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from livepack.errors import PackerError

logger = logging.getLogger(__name__)


@dataclass
class PackRequest:
    """One invocation of the archive packer."""
    input_dir: Path
    output_dir: Path
    family: str                     # archive name prefix, e.g. C2C / C2CPatch
    chunk_size: int = 256           # max archive size passed through as /S
    extension: str = ".fpk"


@dataclass
class PackResult:
    archives: List[Path] = field(default_factory=list)
    returncode: int = 0
    output: str = ""


class IArchivePacker(ABC):
    @abstractmethod
    def build_archive(self, request: PackRequest) -> PackResult:  # pragma: no cover - interface
        """Pack ``request.input_dir`` into one or more archives under ``request.output_dir``.

        Raises PackerError on failure; a successful result always lists at
        least one archive.
        """
        raise NotImplementedError


Runner = Callable[..., subprocess.CompletedProcess]


def collect_archives(output_dir: Path, extension: str) -> List[Path]:
    ext = extension.lower()
    if not output_dir.is_dir():
        return []
    return sorted(p for p in output_dir.iterdir() if p.is_file() and p.suffix.lower() == ext)


class PakBuildPacker(IArchivePacker):
    """Runs the external ``PakBuild`` tool.

    Command line: ``PakBuild /I=<in> /O=<out> [extra] /S=<chunk> /R=<family>``,
    executed from the tools directory.
    """

    def __init__(
        self,
        tools_dir: Path,
        executable: str = "PakBuild",
        extra_args: Optional[List[str]] = None,
        runner: Runner | None = None,
    ) -> None:
        self.tools_dir = Path(tools_dir)
        self.executable = executable
        self.extra_args = list(extra_args) if extra_args is not None else ["/F"]
        self._run = runner or subprocess.run

    def _resolve_executable(self) -> str:
        for cand in (self.tools_dir / self.executable, self.tools_dir / f"{self.executable}.exe"):
            if cand.is_file():
                return str(cand)
        found = shutil.which(self.executable)
        return found or self.executable

    def command_for(self, request: PackRequest) -> List[str]:
        return [
            self._resolve_executable(),
            f"/I={request.input_dir}",
            f"/O={request.output_dir}",
            *self.extra_args,
            f"/S={request.chunk_size}",
            f"/R={request.family}",
        ]

    def build_archive(self, request: PackRequest) -> PackResult:
        request.output_dir.mkdir(parents=True, exist_ok=True)
        cmd = self.command_for(request)
        logger.info("Running: %s", " ".join(cmd))
        try:
            res = self._run(
                cmd,
                cwd=str(self.tools_dir),
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except FileNotFoundError as e:
            raise PackerError(
                f"Packer executable not found: {self.executable}",
                step="pack",
                detail=f"Looked in {self.tools_dir} and PATH",
            ) from e
        except OSError as e:
            raise PackerError(f"Cannot run packer {self.executable}", step="pack", detail=str(e)) from e

        output = ((res.stdout or "") + (res.stderr or "")).strip()
        if res.returncode != 0:
            raise PackerError(
                f"{self.executable} exited with code {res.returncode} while building {request.family}",
                step="pack",
                detail=output or None,
            )
        archives = collect_archives(request.output_dir, request.extension)
        if not archives:
            raise PackerError(
                f"{self.executable} produced no {request.extension} archives for {request.family}",
                step="pack",
                detail=output or None,
            )
        logger.info("Packed %d archive(s) for %s", len(archives), request.family)
        return PackResult(archives=archives, returncode=res.returncode, output=output)

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class BuildError(Exception):
    """Fatal condition for the current build attempt.

    ``step`` names the pipeline stage that failed (``"staging"``, ``"pack"``,
    ``"deploy"`` ...) so the operator can tell where things went wrong.
    """
    message: str
    step: str | None = None
    detail: str | None = None

    def __str__(self) -> str:  # pragma: no cover - formatting
        where = f"[{self.step}] " if self.step else ""
        extra = f"\n  >> {self.detail}" if self.detail else ""
        return f"{where}{self.message}{extra}"


class ConfigError(BuildError):
    """Bad configuration or an unusable repository layout."""


class VcsUnavailableError(BuildError):
    """Version control could not be queried (not a repository, git missing, non-zero exit)."""


class UnusableTokenError(BuildError):
    """The stored snapshot token cannot be reconciled; a full rebuild is required."""


class PackerError(BuildError):
    """The archive packer exited non-zero or produced no archives."""


class StagingError(BuildError):
    """Filesystem failure while preparing the staging directory."""


class DeployError(BuildError):
    """Filesystem failure while replacing archives in the live directory."""

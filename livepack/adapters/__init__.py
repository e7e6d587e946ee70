from __future__ import annotations

"""Collaborator interfaces and their command-line implementations.

- IVersionControl: revision and changed-path queries (GitVersionControl)
- IArchivePacker: archive production from a staged tree (PakBuildPacker)

Subprocess mechanics stay inside these adapters; the build pipeline only sees
the typed methods.
"""

from .vcs import IVersionControl, GitVersionControl  # noqa: F401
from .packer import IArchivePacker, PakBuildPacker, PackRequest, PackResult, collect_archives  # noqa: F401

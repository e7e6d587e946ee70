"""
Build Orchestrator - 增量打包流程

    NO_TOKEN  -> FULL_BUILD -> TOKEN_PERSISTED
    HAS_TOKEN -> INCREMENTAL_CHECK -> NO_CHANGES
                                   -> INCREMENTAL_BUILD -> ARCHIVES_DEPLOYED

A full build repacks the whole art tree and records a new token. A patch build
repacks only the files changed since the token into the patch family, which
supersedes any previous patch entirely. The token is written last, only after
deployment succeeded.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Set

from livepack.adapters.packer import IArchivePacker, PackRequest
from livepack.adapters.vcs import IVersionControl
from .asset_paths import AssetPath
from .build_config import BuildConfig
from .change_resolver import ChangeResolver
from .deploy import clear_family, deploy
from livepack.errors import UnusableTokenError
from .snapshot_token import SnapshotToken, TokenStore
from .staging import StagingArea

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


class BuildState(Enum):
    NO_TOKEN = "no_token"
    FULL_BUILD = "full_build"
    TOKEN_PERSISTED = "token_persisted"
    HAS_TOKEN = "has_token"
    INCREMENTAL_CHECK = "incremental_check"
    NO_CHANGES = "no_changes"
    INCREMENTAL_BUILD = "incremental_build"
    ARCHIVES_DEPLOYED = "archives_deployed"


class BuildKind(Enum):
    FULL = "full"
    PATCH = "patch"
    NONE = "none"


@dataclass
class BuildPlan:
    """What a build would do, computed without side effects."""
    kind: BuildKind
    head_revision: str
    token: Optional[SnapshotToken] = None
    changed: List[AssetPath] = field(default_factory=list)
    reason: str = ""


@dataclass
class BuildResult:
    kind: BuildKind
    state: BuildState
    head_revision: str = ""
    archives: List[Path] = field(default_factory=list)
    staged_files: int = 0
    changed_files: int = 0
    token: Optional[SnapshotToken] = None


class BuildOrchestrator:
    """Drives one build attempt from token to deployed archives."""

    def __init__(
        self,
        config: BuildConfig,
        vcs: IVersionControl,
        packer: IArchivePacker,
        token_store: Optional[TokenStore] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.vcs = vcs
        self.packer = packer
        self.token_store = token_store or TokenStore(config.token_path)
        self.resolver = ChangeResolver(vcs, config.art_path, config.art_subtree)
        self.staging = StagingArea(config.staging_path, config.art_path)
        self._progress = progress
        self.state: Optional[BuildState] = None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def set_progress_callback(self, progress: Optional[ProgressCallback]) -> None:
        self._progress = progress

    def _report(self, percent: int, message: str) -> None:
        logger.debug("[%d%%] %s", percent, message)
        if self._progress:
            self._progress(percent, message)

    def _enter(self, state: BuildState) -> None:
        logger.info("Build state: %s", state.value)
        self.state = state

    def _load_token(self) -> Optional[SnapshotToken]:
        token = self.token_store.load()
        if token is None or not token.is_valid:
            return None
        return token

    def _pack(self, family: str) -> List[Path]:
        request = PackRequest(
            input_dir=self.staging.input_dir,
            output_dir=self.staging.output_dir,
            family=family,
            chunk_size=self.config.chunk_size,
            extension=self.config.archive_extension,
        )
        return self.packer.build_archive(request).archives

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    def plan(self) -> BuildPlan:
        """Decide between full, patch and no-op without touching the filesystem."""
        head = self.vcs.current_revision()
        token = self._load_token()
        if token is None:
            return BuildPlan(kind=BuildKind.FULL, head_revision=head, reason="no valid snapshot token")
        try:
            changed = self.resolver.resolve_changes_since_token(token, head)
        except UnusableTokenError as e:
            return BuildPlan(kind=BuildKind.FULL, head_revision=head, token=token, reason=str(e))
        if not changed:
            return BuildPlan(kind=BuildKind.NONE, head_revision=head, token=token, reason="no changes")
        return BuildPlan(
            kind=BuildKind.PATCH,
            head_revision=head,
            token=token,
            changed=sorted(changed),
            reason=f"{len(changed)} changed file(s)",
        )

    def run(self) -> BuildResult:
        token = self._load_token()
        if token is None:
            self._enter(BuildState.NO_TOKEN)
            return self.full_build()

        self._enter(BuildState.HAS_TOKEN)
        head = self.vcs.current_revision()
        self._enter(BuildState.INCREMENTAL_CHECK)
        try:
            changed = self.resolver.resolve_changes_since_token(token, head)
        except UnusableTokenError as e:
            logger.warning("Falling back to a full rebuild: %s", e)
            self._enter(BuildState.NO_TOKEN)
            return self.full_build()

        if not changed:
            self._enter(BuildState.NO_CHANGES)
            logger.info("Art tree unchanged since %s, nothing to do", token.revision)
            return BuildResult(kind=BuildKind.NONE, state=BuildState.NO_CHANGES, head_revision=head, token=token)
        return self.patch_build(token, head, changed)

    def full_build(self) -> BuildResult:
        """Repack the whole art tree and record a fresh token."""
        self._enter(BuildState.FULL_BUILD)
        cfg = self.config
        self._report(10, "Gathering files...")
        started = time.time()
        head = self.vcs.current_revision()
        modifications = self.resolver.resolve_full_snapshot_modifications(head)
        new_token = SnapshotToken.create(head, modifications, recorded_at=started)

        with self.staging.session():
            staged = self.staging.stage_tree()
            self._report(50, "Building archives...")
            archives = self._pack(cfg.full_family)

            self._report(70, "Moving new archives into place...")
            deployed = deploy(archives, cfg.assets_path, cfg.full_family, cfg.archive_extension)
            self._report(80, "Deleting old patch archives...")
            # a full build supersedes every patch generation
            clear_family(cfg.assets_path, cfg.patch_family, cfg.archive_extension)

            self._report(90, "Cleaning up...")
            self.token_store.save(new_token)
            self._enter(BuildState.TOKEN_PERSISTED)

        self._report(100, "Done!")
        return BuildResult(
            kind=BuildKind.FULL,
            state=BuildState.TOKEN_PERSISTED,
            head_revision=head,
            archives=deployed,
            staged_files=staged,
            changed_files=len(modifications),
            token=new_token,
        )

    def patch_build(self, token: SnapshotToken, head: str, changed: Set[AssetPath]) -> BuildResult:
        """Pack ``changed`` into a patch archive replacing the previous patch."""
        self._enter(BuildState.INCREMENTAL_BUILD)
        cfg = self.config
        new_token: Optional[SnapshotToken] = None
        started = time.time()

        with self.staging.session():
            self._report(10, "Gathering files...")
            staged = self.staging.stage_files(self.resolver.existing_files(changed))
            if staged:
                self._report(50, "Building patch archive...")
                archives = self._pack(cfg.patch_family)
                self._report(80, "Moving patch archives into place...")
                deployed = deploy(archives, cfg.assets_path, cfg.patch_family, cfg.archive_extension)
            else:
                # every changed file was deleted; the previous patch is stale
                logger.info("No changed file still exists, removing old patch archives")
                clear_family(cfg.assets_path, cfg.patch_family, cfg.archive_extension)
                deployed = []
            self._enter(BuildState.ARCHIVES_DEPLOYED)

            if cfg.rewrite_token_after_patch:
                new_token = SnapshotToken.create(head, self.resolver.local_modifications(head), recorded_at=started)
                self.token_store.save(new_token)

        self._report(100, "Done!")
        return BuildResult(
            kind=BuildKind.PATCH,
            state=BuildState.ARCHIVES_DEPLOYED,
            head_revision=head,
            archives=deployed,
            staged_files=staged,
            changed_files=len(changed),
            token=new_token or token,
        )


__all__ = [
    'BuildState',
    'BuildKind',
    'BuildPlan',
    'BuildResult',
    'BuildOrchestrator',
    'ProgressCallback',
]

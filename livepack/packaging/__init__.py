"""
livepack packaging pipeline
增量素材包构建

包含:
- snapshot_token: 上次成功打包的快照标记
- change_resolver: 变更文件计算
- staging: 打包暂存目录
- deploy: 素材包部署
- orchestrator: 完整/增量构建流程
- build_config: 构建配置
- errors: 错误类型
"""

from .asset_paths import (
    AssetPath,
    normalize_key,
    strip_subtree,
    unique_paths,
)

from .build_config import (
    CONFIG_FILENAME,
    BuildConfig,
)

from .change_resolver import ChangeResolver

from .deploy import (
    family_members,
    clear_family,
    deploy,
)

from livepack.errors import (
    BuildError,
    ConfigError,
    VcsUnavailableError,
    UnusableTokenError,
    PackerError,
    StagingError,
    DeployError,
)

from .orchestrator import (
    BuildState,
    BuildKind,
    BuildPlan,
    BuildResult,
    BuildOrchestrator,
)

from .snapshot_token import (
    SnapshotToken,
    TokenStore,
)

from .staging import StagingArea

__all__ = [
    # Asset paths
    'AssetPath',
    'normalize_key',
    'strip_subtree',
    'unique_paths',
    # Config
    'CONFIG_FILENAME',
    'BuildConfig',
    # Pipeline
    'ChangeResolver',
    'StagingArea',
    'family_members',
    'clear_family',
    'deploy',
    'BuildState',
    'BuildKind',
    'BuildPlan',
    'BuildResult',
    'BuildOrchestrator',
    # Token
    'SnapshotToken',
    'TokenStore',
    # Errors
    'BuildError',
    'ConfigError',
    'VcsUnavailableError',
    'UnusableTokenError',
    'PackerError',
    'StagingError',
    'DeployError',
]

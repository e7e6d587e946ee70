"""
Build Configuration - 构建配置

Every location the pipeline touches is derived from an explicit repository
root; nothing is resolved against the process working directory.

Optional overrides live in ``livepack.json`` at the repository root:

    {
        "art_dir": "UnpackedArt",
        "assets_dir": "Assets",
        "patch_family": "C2CPatch",
        "rewrite_token_after_patch": false
    }
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from livepack.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = 'livepack.json'


@dataclass
class BuildConfig:
    """Locations and packer settings for one repository."""
    root_dir: Path = field(default_factory=Path)

    # 目录 (relative to root_dir)
    art_dir: str = "UnpackedArt"
    assets_dir: str = "Assets"
    tools_dir: str = "Tools"
    staging_dir: str = "FPKTemp"
    token_file: str = "Assets/fpklive_token.txt"

    # 打包器
    packer_executable: str = "PakBuild"
    packer_extra_args: List[str] = field(default_factory=lambda: ["/F"])
    chunk_size: int = 256
    full_family: str = "C2C"
    patch_family: str = "C2CPatch"
    archive_extension: str = ".fpk"

    # 版本控制
    git_executable: str = "git"

    # Replace the token after each patch build instead of keeping the
    # full-build baseline.
    rewrite_token_after_patch: bool = False

    def __post_init__(self):
        self.root_dir = Path(self.root_dir)
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}", step="config")
        if not self.full_family or not self.patch_family:
            raise ConfigError("archive family prefixes must not be empty", step="config")
        if self.full_family.lower().startswith(self.patch_family.lower()):
            # deploying a patch would otherwise delete the full archives
            raise ConfigError(
                f"patch_family {self.patch_family!r} must differ from and not prefix full_family {self.full_family!r}",
                step="config",
            )
        if not self.archive_extension.startswith('.'):
            self.archive_extension = '.' + self.archive_extension

    # ------------------------------------------------------------------
    # Resolved locations
    # ------------------------------------------------------------------

    @property
    def art_path(self) -> Path:
        return self.root_dir / self.art_dir

    @property
    def assets_path(self) -> Path:
        return self.root_dir / self.assets_dir

    @property
    def tools_path(self) -> Path:
        return self.root_dir / self.tools_dir

    @property
    def staging_path(self) -> Path:
        return self.root_dir / self.staging_dir

    @property
    def token_path(self) -> Path:
        return self.root_dir / self.token_file

    @property
    def art_subtree(self) -> str:
        """Art directory as a repository-relative, forward-slash pathspec."""
        return Path(self.art_dir).as_posix().strip('/')

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        data = asdict(self)
        data.pop('root_dir')
        return json.dumps(data, ensure_ascii=False, indent=2)

    @classmethod
    def from_json(cls, json_str: str, root_dir: Path) -> 'BuildConfig':
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigError("Config is not valid JSON", step="config", detail=str(e)) from e
        if not isinstance(data, dict):
            raise ConfigError("Config must be a JSON object", step="config")
        return cls.from_dict(data, root_dir)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], root_dir: Path) -> 'BuildConfig':
        known = {f.name for f in fields(cls)} - {'root_dir'}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        values = {k: v for k, v in data.items() if k in known}
        cls._check_types(values)
        return cls(root_dir=Path(root_dir), **values)

    @classmethod
    def _check_types(cls, values: Dict[str, Any]) -> None:
        """Each value must have the type of the field's default."""
        reference = cls()
        for key, value in values.items():
            expected = type(getattr(reference, key))
            # bool is an int subclass; neither may stand in for the other
            ok = isinstance(value, expected) and (expected is bool or not isinstance(value, bool))
            if ok and expected is list:
                ok = all(isinstance(item, str) for item in value)
            if not ok:
                wanted = "list of strings" if expected is list else expected.__name__
                raise ConfigError(
                    f"Config key {key!r} must be a {wanted}, got {value!r}",
                    step="config",
                )

    def save(self, path: Optional[Path] = None) -> Path:
        path = Path(path) if path else self.root_dir / CONFIG_FILENAME
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding='utf-8')
        return path

    @classmethod
    def load(cls, path: Path, root_dir: Optional[Path] = None) -> 'BuildConfig':
        """Load a config file; ``root_dir`` defaults to the file's directory."""
        path = Path(path)
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            raise ConfigError(f"Cannot read config {path}", step="config", detail=str(e)) from e
        return cls.from_json(text, Path(root_dir) if root_dir else path.parent)

    @classmethod
    def load_from_directory(cls, root_dir: Path) -> 'BuildConfig':
        """Defaults for ``root_dir``, overridden by its ``livepack.json`` when present."""
        root_dir = Path(root_dir)
        cfg_file = root_dir / CONFIG_FILENAME
        if cfg_file.exists():
            return cls.load(cfg_file, root_dir)
        return cls(root_dir=root_dir)

    def validate_layout(self) -> None:
        """Check the directories a build needs before touching anything."""
        if not self.root_dir.is_dir():
            raise ConfigError(f"Repository root not found: {self.root_dir}", step="config")
        if not self.art_path.is_dir():
            raise ConfigError(f"Art directory not found: {self.art_path}", step="config")
        if not self.assets_path.is_dir():
            raise ConfigError(f"Assets directory not found: {self.assets_path}", step="config")


__all__ = [
    'CONFIG_FILENAME',
    'BuildConfig',
]

"""
User-level settings for swift-v5.

Settings come from an optional YAML file in the data directory
(``~/.swift-v5/config.yaml``) and can be overridden by environment variables.

Example config.yaml:

    cache_dir: /opt/swift-v5/toolchains
    release_repo: arm/arm-toolchain
    timeout: 60
    max_retries: 5
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from swift_v5.core.directory import (
    DOWNLOADS_DIR_NAME,
    LOCK_DIR_NAME,
    SETTINGS_FILE_NAME,
    TOOLCHAINS_DIR_NAME,
    get_data_dir,
)
from swift_v5.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "SWIFT_V5_CACHE_DIR": "cache_dir",
    "SWIFT_V5_RELEASE_REPO": "release_repo",
    "SWIFT_V5_API_URL": "api_url",
    "GITHUB_TOKEN": "github_token",
}


@dataclass
class Settings:
    """Resolved user settings."""

    data_dir: Path = field(default_factory=get_data_dir)
    cache_dir: Optional[Path] = None
    release_repo: str = "arm/arm-toolchain"
    api_url: str = "https://api.github.com"
    timeout: float = 30
    max_retries: int = 3
    backoff_base: float = 1.0
    lock_timeout: float = 30
    github_token: Optional[str] = None

    def __post_init__(self):
        self.data_dir = Path(self.data_dir).expanduser()
        if self.cache_dir is None:
            self.cache_dir = self.data_dir / TOOLCHAINS_DIR_NAME
        else:
            self.cache_dir = Path(self.cache_dir).expanduser()

        if self.release_repo.count("/") != 1:
            raise ConfigError(
                f"release_repo must look like 'owner/name', got {self.release_repo!r}"
            )
        if self.max_retries < 1:
            raise ConfigError("max_retries must be at least 1")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")

    @property
    def downloads_dir(self) -> Path:
        return self.data_dir / DOWNLOADS_DIR_NAME

    @property
    def lock_dir(self) -> Path:
        return self.data_dir / LOCK_DIR_NAME


def load_yaml_config(config_file: Path) -> Dict[str, Any]:
    """
    Load and parse an optional YAML settings file.

    Returns:
        Configuration dictionary (empty dict if the file doesn't exist)

    Raises:
        ConfigError: If YAML parsing fails or the document is not a mapping
    """
    if not config_file.exists():
        logger.debug(f"Settings file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading settings from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    config = config or {}
    if not isinstance(config, dict):
        raise ConfigError(f"Settings file must contain a mapping: {config_file}")

    return config


def load_settings(
    data_dir: Optional[Path] = None, environ: Optional[Dict[str, str]] = None
) -> Settings:
    """
    Build Settings from the YAML file and environment overrides.

    Args:
        data_dir: Data directory (default: get_data_dir())
        environ: Environment mapping (default: os.environ)

    Raises:
        ConfigError: If a value has the wrong type or the file is invalid
    """
    environ = os.environ if environ is None else environ
    data_dir = data_dir or get_data_dir()

    values = load_yaml_config(data_dir / SETTINGS_FILE_NAME)

    known = {f.name for f in fields(Settings)} - {"data_dir"}
    unknown = set(values) - known
    if unknown:
        logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")
    values = {k: v for k, v in values.items() if k in known}

    for env_var, key in ENV_OVERRIDES.items():
        if environ.get(env_var):
            values[key] = environ[env_var]

    for key in ("cache_dir", "release_repo", "api_url", "github_token"):
        value = values.get(key)
        if key in values and not isinstance(value, str):
            if value is None and key in ("cache_dir", "github_token"):
                continue
            raise ConfigError(
                f"Invalid settings value: {key} must be a string, got {value!r}"
            )

    try:
        for key in ("timeout", "backoff_base", "lock_timeout"):
            if key in values:
                values[key] = float(values[key])
        if "max_retries" in values:
            values["max_retries"] = int(values["max_retries"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid settings value: {e}") from e

    return Settings(data_dir=data_dir, **values)

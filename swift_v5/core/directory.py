"""
Directory structure management for swift-v5.

Directory Structure:
    Data directory (~/.swift-v5/ or %USERPROFILE%\\.swift-v5\\, or $SWIFT_V5_HOME):
        - toolchains/             : Cache root, one subdirectory per installed version
          - <version>/            : Complete, verified toolchain
          - .tmp/                 : Staging area for installs and evictions
          - manifest.json         : Install timestamps and source URLs
        - downloads/              : In-flight archive downloads
        - lock/                   : Lock files guarding the manifest
        - config.yaml             : Optional user settings

    Project (<project-root>/):
        - Package.swift           : Marks the project root
        - v5.toml                 : Optional toolchain pin
        - llvm-toolchain          : Link to the active toolchain
"""

import os
from pathlib import Path

from swift_v5.core.exceptions import ConfigError


class DirectoryError(ConfigError):
    """Raised when the data directory cannot be determined."""

    pass


HOME_ENV_VAR = "SWIFT_V5_HOME"

TOOLCHAINS_DIR_NAME = "toolchains"
DOWNLOADS_DIR_NAME = "downloads"
LOCK_DIR_NAME = "lock"
STAGING_DIR_NAME = ".tmp"
MANIFEST_FILE_NAME = "manifest.json"
SETTINGS_FILE_NAME = "config.yaml"


def get_data_dir() -> Path:
    """
    Get the platform-specific swift-v5 data directory.

    Returns:
        Path: The data directory path.
            - $SWIFT_V5_HOME if set
            - Windows: %USERPROFILE%\\.swift-v5
            - Linux/macOS: ~/.swift-v5/

    Example:
        >>> data_dir = get_data_dir()
        >>> print(data_dir)
        /home/user/.swift-v5  # on Linux
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()

    if os.name == "nt":
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise DirectoryError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine swift-v5 data directory."
            )
        return Path(user_profile) / ".swift-v5"

    return Path.home() / ".swift-v5"


def get_staging_dir(cache_root: Path) -> Path:
    """Staging directory; a sibling of the version slots so renames stay on one volume."""
    return cache_root / STAGING_DIR_NAME


def get_manifest_path(cache_root: Path) -> Path:
    return cache_root / MANIFEST_FILE_NAME


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists (idempotent).

    Args:
        path: Directory path

    Returns:
        The same path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path

"""Project discovery and toolchain version pin resolution.

A project is the nearest directory (walking upward) that contains
``Package.swift``. It may carry a ``v5.toml`` next to the manifest:

    llvm-version = "20.1.0"

Without the file, or without the key, the project follows the latest stable
toolchain release.
"""

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from swift_v5.core.exceptions import ConfigError, ProjectNotFoundError
from swift_v5.core.version import LATEST, Version, VersionSpec

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "Package.swift"
CONFIG_FILE_NAME = "v5.toml"
VERSION_KEY = "llvm-version"


@dataclass(frozen=True)
class ProjectConfig:
    """Parsed contents of v5.toml."""

    llvm_version: Optional[str] = None


def find_project_root(start: Optional[Path] = None) -> Path:
    """
    Find the project root by searching upward for Package.swift.

    Raises:
        ProjectNotFoundError: If no ancestor contains Package.swift
    """
    start = (start or Path.cwd()).resolve()

    for candidate in (start, *start.parents):
        logger.debug(f"Searching for project root in {candidate}")
        try:
            names = [entry.name.lower() for entry in candidate.iterdir()]
        except OSError as e:
            raise ConfigError(f"Cannot read directory {candidate}: {e}") from e

        if MANIFEST_FILE_NAME.lower() in names:
            logger.debug(f"Found project root: {candidate}")
            return candidate

    raise ProjectNotFoundError(str(start))


def config_path(project_dir: Path) -> Path:
    return project_dir / CONFIG_FILE_NAME


def load_project_config(project_dir: Path) -> Optional[ProjectConfig]:
    """
    Read v5.toml from the project directory.

    Returns:
        ProjectConfig, or None when the file does not exist

    Raises:
        ConfigError: If the file is not valid TOML or the pin is not a string
    """
    path = config_path(project_dir)
    logger.debug(f"Attempting to read config {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        logger.debug("No config file found")
        return None
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse {CONFIG_FILE_NAME}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    unknown = set(data) - {VERSION_KEY}
    if unknown:
        logger.debug(f"Ignoring unrecognized keys in {CONFIG_FILE_NAME}: {sorted(unknown)}")

    pin = data.get(VERSION_KEY)
    if pin is not None and not isinstance(pin, str):
        raise ConfigError(
            f"'{VERSION_KEY}' in {CONFIG_FILE_NAME} must be a string, "
            f"got {type(pin).__name__}"
        )

    return ProjectConfig(llvm_version=pin)


def resolve(project_dir: Path) -> VersionSpec:
    """
    Determine which toolchain version a project requires.

    Returns:
        The pinned Version, or LATEST if nothing is pinned

    Raises:
        ConfigError: If the pin is malformed
    """
    config = load_project_config(project_dir)
    if config is None or config.llvm_version is None:
        return LATEST

    try:
        version = Version.parse(config.llvm_version)
    except ConfigError as e:
        raise ConfigError(f"Invalid '{VERSION_KEY}' in {CONFIG_FILE_NAME}: {e}") from e

    logger.debug(f"Project pins toolchain {version}")
    return version

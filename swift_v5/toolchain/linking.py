"""
Project activation link.

After installation the project gets an ``llvm-toolchain`` entry pointing at
the cached toolchain, so build scripts can use a stable relative path:

    <project>/llvm-toolchain -> ~/.swift-v5/toolchains/20.1.0

Symlinks are used where possible; on Windows a directory junction is created
when symlinks are not permitted.
"""

import logging
import os
from pathlib import Path

from swift_v5.core.exceptions import InstallError
from swift_v5.core.filesystem import LinkCreationError, create_link
from swift_v5.toolchain.cache import CacheEntry

logger = logging.getLogger(__name__)

LINK_NAME = "llvm-toolchain"


def link_path(project_dir: Path) -> Path:
    return project_dir / LINK_NAME


def _is_link(path: Path) -> bool:
    return path.is_symlink() or (hasattr(path, "is_junction") and path.is_junction())


def _read_link(path: Path) -> Path:
    return Path(os.readlink(path))


def activate(project_dir: Path, entry: CacheEntry) -> Path:
    """
    Point the project's llvm-toolchain link at an installed toolchain.

    An existing link to the same toolchain is left alone, a link to a
    different toolchain is replaced.

    Returns:
        Path of the link

    Raises:
        InstallError: If a regular file or directory is in the way, or the
            link cannot be created
    """
    link = link_path(project_dir)
    target = entry.install_path.resolve()

    if _is_link(link):
        current = _read_link(link)
        if not current.is_absolute():
            current = link.parent / current
        if current.resolve() == target:
            logger.debug(f"{link} already points to {target}")
            return link

        logger.info(f"Switching {LINK_NAME} from {current} to {target}")
        try:
            # Junctions are directories to os.unlink on Windows
            if os.name == "nt" and link.is_dir():
                os.rmdir(link)
            else:
                link.unlink()
        except OSError as e:
            raise InstallError(f"Failed to remove existing link {link}: {e}") from e
    elif link.exists():
        raise InstallError(
            f"{link} exists and is not a link. Remove it to activate toolchain {entry.version}."
        )

    try:
        create_link(target, link)
    except LinkCreationError as e:
        raise InstallError(f"Failed to link {link} to {target}: {e}") from e

    logger.info(f"Activated toolchain {entry.version} in {project_dir}")
    return link

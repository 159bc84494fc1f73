"""
Host platform detection for toolchain asset selection.

Arm Toolchain for Embedded assets are named like
``ATfE-20.1.0-Linux-x86_64.tar.xz`` or ``ATfE-20.1.0-Darwin-universal.dmg``.
This module detects the host OS/architecture and decides whether an asset
name is usable on it.

Usage:
    from swift_v5.core.platform import detect_platform

    platform_id = detect_platform()
    print(platform_id)                      # Linux-x86_64
    platform_id.matches("ATfE-20.1.0-Linux-x86_64.tar.xz")   # True
"""

import functools
import logging
import platform
from dataclasses import dataclass
from typing import Optional, Tuple

from swift_v5.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ("tar.xz", "zip", "dmg")

_OS_NAMES = {
    "darwin": "Darwin",
    "linux": "Linux",
    "windows": "Windows",
}

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "AArch64",
    "arm64": "AArch64",
}


@dataclass(frozen=True)
class PlatformId:
    """
    Host platform as used in release asset names.

    Attributes:
        os: 'Darwin', 'Linux' or 'Windows'
        arches: Accepted architecture tokens in order of preference
    """

    os: str
    arches: Tuple[str, ...]

    def __str__(self) -> str:
        return f"{self.os}-{'/'.join(self.arches)}"

    def matches(self, asset_name: str) -> bool:
        """
        Check whether a release asset can run on this platform.

        The name is split on '-', the extension is removed from the last
        component, and the remaining components must contain the OS token and
        one of the accepted architecture tokens.
        """
        extension = split_extension(asset_name)
        if extension is None:
            return False

        stem = asset_name[: -(len(extension) + 1)]
        components = stem.split("-")

        correct_os = self.os in components
        correct_arch = any(arch in components for arch in self.arches)

        logger.debug(
            f"Asset {asset_name}: os={correct_os} arch={correct_arch} ext={extension}"
        )
        return correct_os and correct_arch


def split_extension(file_name: str) -> Optional[str]:
    """Return the supported archive extension of a file name, if any."""
    for extension in ALLOWED_EXTENSIONS:
        if file_name.endswith(f".{extension}"):
            return extension
    return None


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformId:
    """
    Detect the current host platform.

    This function is cached - it only runs detection once per process.

    Raises:
        NotFoundError: If no toolchain build exists for this OS/architecture
    """
    system = platform.system().lower()
    machine = platform.machine().lower()

    os_name = _OS_NAMES.get(system)
    if os_name is None:
        raise NotFoundError(f"No toolchain builds exist for operating system: {system}")

    arch = _ARCH_ALIASES.get(machine)
    if arch is None:
        raise NotFoundError(f"No toolchain builds exist for architecture: {machine}")

    arches: Tuple[str, ...] = (arch,)
    if os_name == "Darwin":
        arches = arches + ("universal",)

    return PlatformId(os=os_name, arches=arches)


def clear_platform_cache():
    """Clear cached detection result (for tests)."""
    detect_platform.cache_clear()

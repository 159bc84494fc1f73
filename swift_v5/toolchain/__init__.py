"""
Toolchain acquisition: release lookup, cache index, installation and activation.
"""

from swift_v5.toolchain.cache import CacheEntry, CacheIndex
from swift_v5.toolchain.installer import Installer
from swift_v5.toolchain.manager import InstallResult, ToolchainManager
from swift_v5.toolchain.releases import ArtifactRef, GitHubReleaseIndex

__all__ = [
    "ArtifactRef",
    "CacheEntry",
    "CacheIndex",
    "GitHubReleaseIndex",
    "InstallResult",
    "Installer",
    "ToolchainManager",
]

"""
Toolchain acquisition pipeline.

Turns a project's toolchain requirement into a ready-to-use installation:

    Requested -> Resolved -> CacheHit -> Ready
                          -> CacheMiss -> Fetching -> Verifying -> Installing -> Ready

Any stage can end in Failed(kind), where kind is the exception class raised.
A failed run leaves the cache exactly as it found it and removes its
temporary download.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from swift_v5.config import project
from swift_v5.config.settings import Settings
from swift_v5.core.download import ProgressCallback, temporary_download
from swift_v5.core.exceptions import (
    InstallCancelled,
    NetworkError,
    NotInstalledError,
)
from swift_v5.core.platform import PlatformId, detect_platform
from swift_v5.core.verification import verify
from swift_v5.core.version import Version, VersionSpec, is_latest
from swift_v5.toolchain.cache import CacheEntry, CacheIndex
from swift_v5.toolchain.installer import Installer
from swift_v5.toolchain.releases import ArtifactRef, GitHubReleaseIndex

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[ArtifactRef], bool]


@dataclass
class InstallResult:
    """Outcome of ToolchainManager.ensure()."""

    entry: CacheEntry
    """The installed toolchain"""

    spec: VersionSpec
    """What the project asked for (LATEST or a pinned Version)"""

    was_cached: bool
    """Whether the toolchain was already installed (no download needed)"""


class ToolchainManager:
    """
    Resolves, downloads, verifies and installs toolchains.

    Example:
        >>> manager = ToolchainManager(load_settings())
        >>> result = manager.ensure(find_project_root())
        >>> print(result.entry.install_path)
    """

    def __init__(
        self,
        settings: Settings,
        locator: Optional[GitHubReleaseIndex] = None,
        index: Optional[CacheIndex] = None,
        platform: Optional[PlatformId] = None,
        fetch_options: Optional[dict] = None,
    ):
        self.settings = settings
        self.locator = locator or GitHubReleaseIndex(
            repo=settings.release_repo,
            api_url=settings.api_url,
            timeout=settings.timeout,
            token=settings.github_token,
        )
        self.index = index or CacheIndex(
            settings.cache_dir,
            lock_dir=settings.lock_dir,
            lock_timeout=settings.lock_timeout,
        )
        self.installer = Installer(self.index)
        self._platform = platform
        self.fetch_options = {
            "timeout": settings.timeout,
            "max_retries": settings.max_retries,
            "backoff_base": settings.backoff_base,
        }
        self.fetch_options.update(fetch_options or {})

    @property
    def platform(self) -> PlatformId:
        if self._platform is None:
            self._platform = detect_platform()
        return self._platform

    def ensure(
        self,
        project_dir: Path,
        force: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> InstallResult:
        """
        Make sure the toolchain a project requires is installed.

        Args:
            project_dir: Project root (directory containing Package.swift)
            force: Download and reinstall even if the version is cached
            progress_callback: Optional download progress callback
            confirm: Optional callback asked before downloading; returning
                False raises InstallCancelled

        Returns:
            InstallResult describing the installed toolchain

        Raises:
            ConfigError: Malformed pin
            NotFoundError: No release or no build for this platform
            NetworkError: Release index or download unreachable
            VerifyError: Checksum mismatch
            InstallError: Extraction or cache placement failed
        """
        logger.debug("state: Requested")
        spec = project.resolve(project_dir)
        logger.debug(f"state: Resolved ({spec!r})")

        try:
            return self._ensure(spec, force, progress_callback, confirm)
        except Exception as e:
            logger.debug(f"state: Failed({type(e).__name__})")
            raise

    def _ensure(self, spec, force, progress_callback, confirm) -> InstallResult:
        if not is_latest(spec) and not force:
            entry = self.index.lookup(spec)
            if entry is not None:
                logger.debug("state: CacheHit")
                logger.debug("state: Ready")
                return InstallResult(entry=entry, spec=spec, was_cached=True)

        ref = self._locate(spec)
        if ref is None:
            entry = self.index.latest_stable()
            logger.debug("state: CacheHit")
            logger.debug("state: Ready")
            return InstallResult(entry=entry, spec=spec, was_cached=True)

        if not force:
            entry = self.index.lookup(ref.version)
            if entry is not None:
                logger.debug("state: CacheHit")
                logger.debug("state: Ready")
                return InstallResult(entry=entry, spec=spec, was_cached=True)

        logger.debug("state: CacheMiss")
        if confirm is not None and not confirm(ref):
            raise InstallCancelled(f"Installation of toolchain {ref.version} cancelled")

        entry = self._acquire(ref, force, progress_callback)
        logger.debug("state: Ready")
        return InstallResult(entry=entry, spec=spec, was_cached=False)

    def _locate(self, spec: VersionSpec) -> Optional[ArtifactRef]:
        """Locate the artifact; None means fall back to the newest cached stable toolchain."""
        try:
            return self.locator.locate(spec, self.platform)
        except NetworkError as e:
            if not is_latest(spec):
                raise
            cached = self.index.latest_stable()
            if cached is None:
                raise
            logger.warning(
                f"Could not check for the latest toolchain ({e}). "
                f"Using installed toolchain {cached.version}."
            )
            return None

    def _acquire(
        self,
        ref: ArtifactRef,
        force: bool,
        progress_callback: Optional[ProgressCallback],
    ) -> CacheEntry:
        logger.info(f"Downloading toolchain {ref.version} ({ref.name})")
        logger.debug("state: Fetching")

        with temporary_download(
            ref,
            self.settings.downloads_dir,
            progress_callback=progress_callback,
            **self.fetch_options,
        ) as archive:
            logger.debug("state: Verifying")
            verify(archive, ref.checksum)

            logger.debug("state: Installing")
            return self.installer.install(
                archive, ref.version, force=force, source_url=ref.url
            )

    def resolve_installed(self, project_dir: Path) -> CacheEntry:
        """
        Find the installed toolchain for a project without downloading.

        For an unpinned project the newest installed stable toolchain is used.

        Raises:
            NotInstalledError: If the required toolchain is not installed
        """
        spec = project.resolve(project_dir)

        if is_latest(spec):
            entry = self.index.latest_stable()
            if entry is None:
                raise NotInstalledError("latest")
            return entry

        entry = self.index.lookup(spec)
        if entry is None:
            raise NotInstalledError(str(spec))
        return entry

    def remove(self, version: Version) -> None:
        self.index.evict(version)

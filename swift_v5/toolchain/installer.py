"""
Atomic installation of verified toolchain archives into the cache.

An archive is extracted into a private staging directory inside
``<cache_root>/.tmp`` and moved into its final version slot with a single
``os.rename``. Readers therefore observe either no directory for a version
or a complete one. Concurrent installers of the same version race on the
rename; the loser discards its staging tree and returns the winner's entry.
"""

import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from swift_v5.core.exceptions import InstallError
from swift_v5.core.filesystem import (
    ArchiveExtractionError,
    FilesystemError,
    extract_archive,
    safe_rmtree,
)
from swift_v5.core.version import Version
from swift_v5.toolchain.cache import CacheEntry, CacheIndex

logger = logging.getLogger(__name__)


class Installer:
    """
    Installs verified archives into a CacheIndex.

    Example:
        >>> installer = Installer(index)
        >>> entry = installer.install(Path("ATfE-20.1.0-Linux-x86_64.tar.xz"), Version(20, 1, 0))
        >>> print(entry.install_path)
    """

    def __init__(self, index: CacheIndex):
        self.index = index

    def install(
        self,
        archive: Path,
        version: Version,
        force: bool = False,
        source_url: Optional[str] = None,
    ) -> CacheEntry:
        """
        Extract an archive and place it at the version's cache slot.

        Args:
            archive: Verified archive file
            version: Exact version the archive contains
            force: Replace an existing installation of the same version
            source_url: URL the archive came from (recorded in the manifest)

        Returns:
            CacheEntry for the installed version. If the version was already
            installed (and force is False) the existing entry is returned.

        Raises:
            InstallError: If extraction or the final move fails. The cache is
                left unchanged and the staging directory is removed.
        """
        slot = self.index.slot_for(version)

        if not force:
            existing = self.index.lookup(version)
            if existing is not None:
                logger.info(f"Toolchain {version} is already installed")
                return existing

        staging_root = self.index.staging_dir
        try:
            staging_root.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(dir=staging_root, prefix=f"{version}-"))
        except OSError as e:
            raise InstallError(f"Cannot create staging directory in {staging_root}: {e}") from e

        try:
            logger.info(f"Extracting {archive.name}")
            extract_dir = staging / "extract"
            try:
                extract_archive(archive, extract_dir)
            except ArchiveExtractionError as e:
                raise InstallError(f"Failed to extract {archive.name}: {e}") from e

            root = self._normalize_root(extract_dir)
            logger.debug(f"Toolchain root for {version} is {root}")

            if force:
                self._replace(root, slot, staging, version)
            elif not self._rename_into_slot(root, slot):
                logger.info(f"Toolchain {version} was installed concurrently")
                existing = self.index.lookup(version)
                if existing is None:
                    raise InstallError(f"Cache slot {slot} vanished during install")
                return existing
        finally:
            self._discard(staging)

        entry = CacheEntry(
            version=version,
            install_path=slot,
            installed_at=datetime.now(timezone.utc),
            source_url=source_url,
        )
        # The slot is already published; the manifest only adds metadata.
        try:
            self.index.record(entry)
        except InstallError as e:
            logger.warning(f"Installed toolchain {version} but could not record it: {e}")
        logger.info(f"Installed toolchain {version} to {slot}")
        return entry

    def _normalize_root(self, extract_dir: Path) -> Path:
        """
        Use the single top-level directory of an archive as the toolchain root.

        Archives that unpack to several top-level entries are used as-is.
        """
        entries = list(extract_dir.iterdir())
        if not entries:
            raise InstallError("Archive is empty")

        if len(entries) == 1 and entries[0].is_dir() and not entries[0].is_symlink():
            return entries[0]
        return extract_dir

    def _rename_into_slot(self, root: Path, slot: Path) -> bool:
        """Move root into the slot. Returns False if the slot is already taken."""
        if slot.exists():
            return False

        slot.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.rename(root, slot)
        except OSError as e:
            if slot.exists():
                return False
            raise InstallError(f"Failed to move toolchain into {slot}: {e}") from e
        return True

    def _replace(self, root: Path, slot: Path, staging: Path, version: Version) -> None:
        """Swap a freshly extracted tree in place of an existing installation."""
        old = staging / "previous"

        had_previous = slot.exists()
        if had_previous:
            logger.info(f"Replacing existing toolchain {version}")
            try:
                os.rename(slot, old)
            except OSError as e:
                raise InstallError(f"Failed to move aside {slot}: {e}") from e

        try:
            os.rename(root, slot)
        except OSError as e:
            if had_previous:
                os.rename(old, slot)
            raise InstallError(f"Failed to move toolchain into {slot}: {e}") from e

    def _discard(self, staging: Path) -> None:
        try:
            safe_rmtree(staging, require_prefix=self.index.staging_dir)
        except FilesystemError as e:
            logger.warning(f"Failed to remove staging directory {staging}: {e}")

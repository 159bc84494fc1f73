"""
Cache index of installed toolchains.

The cache root holds one directory per installed version, named by the
canonical version string, next to a ``.tmp`` staging area and a
``manifest.json``:

    toolchains/
        20.1.0/
        21.1.1/
        .tmp/
        manifest.json

Directory contents are the source of truth. A version is installed exactly
when its directory exists; the manifest only records install timestamps and
source URLs and is never consulted to decide presence.
"""

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from filelock import FileLock, Timeout

from swift_v5.core.directory import get_manifest_path, get_staging_dir
from swift_v5.core.exceptions import InstallError, NotInstalledError
from swift_v5.core.filesystem import FilesystemError, atomic_write_json, safe_rmtree
from swift_v5.core.version import InvalidVersionError, Version

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1
LOCK_FILE_NAME = "manifest.lock"


@dataclass(frozen=True)
class CacheEntry:
    """An installed toolchain."""

    version: Version
    install_path: Path
    installed_at: datetime
    source_url: Optional[str] = None

    @property
    def bin_dir(self) -> Path:
        return self.install_path / "bin"

    def executable(self, name: str) -> Path:
        """
        Path of a tool inside the toolchain's bin directory.

        Example:
            >>> entry.executable("clang")
            PosixPath('/home/user/.swift-v5/toolchains/20.1.0/bin/clang')
        """
        if os.name == "nt" and not name.lower().endswith(".exe"):
            name = f"{name}.exe"
        return self.bin_dir / name


class CacheIndex:
    """
    Scan-based index over the cache root.

    Example:
        >>> index = CacheIndex(Path("~/.swift-v5/toolchains").expanduser())
        >>> for entry in index.list():
        ...     print(entry.version, entry.install_path)
    """

    def __init__(
        self,
        cache_root: Path,
        lock_dir: Optional[Path] = None,
        lock_timeout: float = 30,
    ):
        self.cache_root = Path(cache_root)
        self.staging_dir = get_staging_dir(self.cache_root)
        self.manifest_path = get_manifest_path(self.cache_root)
        self.lock_path = (lock_dir or self.cache_root.parent / "lock") / LOCK_FILE_NAME
        self.lock_timeout = lock_timeout

    def slot_for(self, version: Version) -> Path:
        """Final install directory of a version."""
        return self.cache_root / str(version)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def lookup(self, version: Version) -> Optional[CacheEntry]:
        """
        Find an installed version.

        Returns:
            CacheEntry if the version's directory exists, None otherwise
        """
        slot = self.slot_for(version)
        if not slot.is_dir():
            logger.debug(f"Cache miss for {version}")
            return None

        logger.debug(f"Cache hit for {version} at {slot}")
        return self._entry(version, slot, self._load_manifest())

    def list(self) -> Iterator[CacheEntry]:
        """Yield installed toolchains, newest version first."""
        if not self.cache_root.is_dir():
            return

        manifest = self._load_manifest()
        found = []
        for child in self.cache_root.iterdir():
            if child.name.startswith(".") or not child.is_dir():
                continue
            try:
                version = Version.parse(child.name)
            except InvalidVersionError:
                logger.debug(f"Ignoring non-toolchain directory in cache: {child.name}")
                continue
            # Only the canonical spelling names a slot
            if str(version) != child.name:
                continue
            found.append((version, child))

        for version, path in sorted(found, key=lambda item: item[0], reverse=True):
            yield self._entry(version, path, manifest)

    def latest(self) -> Optional[CacheEntry]:
        """Highest installed version, if any."""
        return next(self.list(), None)

    def latest_stable(self) -> Optional[CacheEntry]:
        """Highest installed version without a pre-release suffix, if any."""
        return next(
            (entry for entry in self.list() if not entry.version.is_prerelease), None
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def record(self, entry: CacheEntry) -> None:
        """
        Record install metadata for an entry that is already in place.

        Raises:
            InstallError: If the manifest lock cannot be acquired
        """
        with self._lock():
            manifest = self._load_manifest()
            toolchains = self._prune(manifest)
            toolchains[str(entry.version)] = {
                "installed_at": entry.installed_at.isoformat(),
                "source_url": entry.source_url,
            }
            self._save_manifest(manifest)

        logger.debug(f"Recorded {entry.version} in cache manifest")

    def evict(self, version: Version) -> None:
        """
        Remove an installed version.

        The directory is renamed into the staging area first so that a
        half-deleted tree never appears under a version name.

        Raises:
            NotInstalledError: If the version is not installed
            InstallError: If the directory cannot be removed
        """
        slot = self.slot_for(version)
        if not slot.is_dir():
            raise NotInstalledError(str(version))

        self.staging_dir.mkdir(parents=True, exist_ok=True)
        doomed = Path(
            tempfile.mkdtemp(dir=self.staging_dir, prefix=f"evict-{version}-")
        )
        doomed.rmdir()

        try:
            os.rename(slot, doomed)
        except FileNotFoundError as e:
            raise NotInstalledError(str(version)) from e
        except OSError as e:
            raise InstallError(f"Failed to remove toolchain {version}: {e}") from e

        logger.info(f"Removing toolchain {version}")
        try:
            safe_rmtree(doomed, require_prefix=self.staging_dir)
        except FilesystemError as e:
            raise InstallError(f"Failed to delete {doomed}: {e}") from e
        finally:
            with self._lock():
                manifest = self._load_manifest()
                self._prune(manifest)
                self._save_manifest(manifest)

    def clean_staging(self) -> int:
        """
        Remove leftovers of interrupted installs and evictions.

        Returns:
            Number of staging entries removed
        """
        if not self.staging_dir.is_dir():
            return 0

        removed = 0
        for child in self.staging_dir.iterdir():
            try:
                if child.is_dir() and not child.is_symlink():
                    safe_rmtree(child, require_prefix=self.staging_dir)
                else:
                    child.unlink()
                removed += 1
            except (OSError, FilesystemError) as e:
                logger.warning(f"Could not remove staging leftover {child}: {e}")

        if removed:
            logger.info(f"Removed {removed} leftover staging entries")
        return removed

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def _entry(self, version: Version, path: Path, manifest: Dict[str, Any]) -> CacheEntry:
        info = manifest["toolchains"].get(str(version), {})
        installed_at = None
        if info.get("installed_at"):
            try:
                installed_at = datetime.fromisoformat(info["installed_at"])
            except ValueError:
                logger.debug(f"Bad timestamp in manifest for {version}")
        if installed_at is None:
            installed_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)

        return CacheEntry(
            version=version,
            install_path=path,
            installed_at=installed_at,
            source_url=info.get("source_url"),
        )

    def _prune(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Drop manifest records whose directory is gone."""
        toolchains = manifest["toolchains"]
        for name in list(toolchains):
            if not (self.cache_root / name).is_dir():
                del toolchains[name]
        return toolchains

    def _load_manifest(self) -> Dict[str, Any]:
        empty = {"version": MANIFEST_VERSION, "toolchains": {}}
        if not self.manifest_path.exists():
            return empty

        try:
            with open(self.manifest_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable cache manifest: {e}")
            return empty

        if not isinstance(data, dict) or not isinstance(data.get("toolchains"), dict):
            logger.warning("Invalid cache manifest format, resetting")
            return empty
        return data

    def _save_manifest(self, manifest: Dict[str, Any]) -> None:
        try:
            atomic_write_json(self.manifest_path, manifest)
        except OSError as e:
            raise InstallError(f"Failed to write cache manifest: {e}") from e

    @contextmanager
    def _lock(self):
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(self.lock_path, timeout=self.lock_timeout)

        try:
            with lock:
                yield
        except Timeout as e:
            raise InstallError(
                f"Could not acquire cache lock within {self.lock_timeout} seconds"
            ) from e
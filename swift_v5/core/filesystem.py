"""
Cross-platform file system utilities for swift-v5.

This module provides:
- Archive extraction (tar.xz, tar.gz, zip, and dmg on macOS)
- Safe file operations (atomic writes, safe deletion)
- Link creation (symlinks, with a directory junction fallback on Windows)

Archive members are validated against directory traversal before anything
is written.
"""

import json
import os
import shutil
import subprocess
import sys
import tarfile
import tempfile
import time
import zipfile
from pathlib import Path
from typing import Any, Callable, Optional, Union

IS_WINDOWS = os.name == "nt"


# ============================================================================
# Errors
# ============================================================================


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


class LinkCreationError(FilesystemError):
    """Failed to create a symbolic link or junction."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not member_path.is_relative_to(destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """
    Extract an archive to a destination directory.

    Supported formats:
    - .tar.xz
    - .tar.gz, .tgz
    - .zip
    - .dmg (macOS only, via hdiutil)

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to
        progress_callback: Optional callback(current, total) for progress

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        ArchiveExtractionError: If extraction fails
        InsecureArchiveError: If archive contains malicious paths

    Example:
        >>> extract_archive('ATfE-20.1.0-Linux-x86_64.tar.xz', '/tmp/staging')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)

    archive_name = archive_path.name.lower()

    try:
        if archive_name.endswith(".zip"):
            _extract_zip(archive_path, destination, progress_callback)
        elif archive_name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, destination, "r:gz", progress_callback)
        elif archive_name.endswith(".tar.xz"):
            _extract_tar(archive_path, destination, "r:xz", progress_callback)
        elif archive_name.endswith(".dmg"):
            _extract_dmg(archive_path, destination, progress_callback)
        else:
            raise UnsupportedArchiveFormat(
                f"Unsupported archive format: {archive_path.name}. "
                "Supported: .tar.xz, .tar.gz, .zip, .dmg"
            )
    except (InsecureArchiveError, UnsupportedArchiveFormat):
        raise
    except Exception as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(
    archive_path: Path,
    destination: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a ZIP archive, keeping Unix permission bits."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.infolist()
        total = len(members)

        for member in members:
            _validate_archive_path(member.filename, destination)

        for i, member in enumerate(members):
            extracted = Path(zf.extract(member, destination))
            mode = (member.external_attr >> 16) & 0o777
            if mode and not IS_WINDOWS:
                extracted.chmod(mode)
            if progress_callback:
                progress_callback(i + 1, total)


def _extract_tar(
    archive_path: Path,
    destination: Path,
    mode: str,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()
        total = len(members)

        for member in members:
            _validate_archive_path(member.name, destination)

        # Python 3.12+ also enforces the "data" filter (no absolute links, no devices)
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="data")
        else:
            tar.extractall(destination)

        if progress_callback:
            progress_callback(total, total)


def _extract_dmg(
    archive_path: Path,
    destination: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    detach_retries: int = 10,
) -> None:
    """Copy the first directory of a mounted macOS disk image to destination."""
    if sys.platform != "darwin":
        raise UnsupportedArchiveFormat("DMG extraction is only supported on macOS")

    hdiutil = shutil.which("hdiutil")
    if not hdiutil:
        raise UnsupportedArchiveFormat("DMG extraction requires hdiutil")

    with tempfile.TemporaryDirectory(prefix="swift-v5-dmg-") as mount_point:
        subprocess.run(
            [
                hdiutil,
                "attach",
                "-nobrowse",
                "-readonly",
                "-mountpoint",
                mount_point,
                str(archive_path),
            ],
            capture_output=True,
            text=True,
            check=True,
        )
        try:
            contents = find_single_directory(Path(mount_point))
            if contents is None:
                raise ArchiveExtractionError(
                    "The disk image did not contain the expected contents"
                )
            shutil.copytree(
                contents, destination / contents.name, symlinks=True, dirs_exist_ok=True
            )
        finally:
            _detach_dmg(hdiutil, mount_point, detach_retries)

    if progress_callback:
        progress_callback(1, 1)


def _detach_dmg(hdiutil: str, mount_point: str, retries: int) -> None:
    # A clean detach flushes everything; fall back to -force after retries.
    for _ in range(retries):
        result = subprocess.run(
            [hdiutil, "detach", mount_point], capture_output=True, text=True
        )
        if result.returncode == 0:
            return
        time.sleep(0.5)
    subprocess.run(
        [hdiutil, "detach", "-force", mount_point], capture_output=True, text=True
    )


def find_single_directory(parent: Path) -> Optional[Path]:
    """Return the first real (non-symlink) directory inside parent."""
    for entry in sorted(parent.iterdir()):
        if entry.is_dir() and not entry.is_symlink():
            return entry
    return None


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    The file is never in a partially-written state. If the write fails,
    the original file (if any) remains unchanged.

    Example:
        >>> atomic_write('manifest.json', '{"toolchains": {}}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in same directory (ensures same filesystem)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def atomic_write_json(file_path: Union[str, Path], data: Any) -> None:
    """Serialize data as indented JSON and write it atomically."""
    atomic_write(file_path, json.dumps(data, indent=2, ensure_ascii=False))


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/home/user/.swift-v5/toolchains/.tmp/x', require_prefix='/home/user/.swift-v5')
    """
    path = Path(path).absolute()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).absolute()
        if not path.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists() and not path.is_symlink():
        return

    if not path.is_dir() or path.is_symlink():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc_info):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise exc_info[1]

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


# ============================================================================
# Link Creation
# ============================================================================


def create_link(source: Union[str, Path], target: Union[str, Path]) -> None:
    """
    Create a directory link at target pointing to source.

    On Windows a symlink needs developer mode or admin rights, so a
    directory junction is created when the symlink is refused.

    Raises:
        LinkCreationError: If the link cannot be created
    """
    source = Path(source).resolve()
    target = Path(target)

    try:
        os.symlink(source, target, target_is_directory=True)
        return
    except OSError as e:
        if not IS_WINDOWS:
            raise LinkCreationError(f"Failed to create symlink: {e}") from e

    result = subprocess.run(
        ["cmd", "/c", "mklink", "/J", str(target), str(source)],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise LinkCreationError(f"Failed to create junction: {result.stderr.strip()}")

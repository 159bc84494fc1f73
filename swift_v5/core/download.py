"""
Network download manager with progress tracking and retry logic.

This module provides:
- HTTP/HTTPS streaming downloads into uniquely named temporary files
- Progress reporting (bytes, percentage, speed, ETA) with a monotonic byte count
- Bounded retry with exponential backoff and an injectable sleep function
- Guaranteed removal of the temporary file on every failing exit path

Content correctness is not checked here; see swift_v5.core.verification.
"""

import logging
import os
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterator, Optional

import requests
from requests.exceptions import HTTPError, RequestException

from swift_v5 import __version__
from swift_v5.core.directory import ensure_directory
from swift_v5.core.exceptions import DownloadError

if TYPE_CHECKING:
    from swift_v5.toolchain.releases import ArtifactRef

logger = logging.getLogger(__name__)

USER_AGENT = f"swift-v5/{__version__}"
CHUNK_SIZE = 64 * 1024
PROGRESS_INTERVAL = 0.25


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        return format_progress(self)


ProgressCallback = Callable[[DownloadProgress], None]


def create_session(token: Optional[str] = None) -> requests.Session:
    """Create an HTTP session with the swift-v5 user agent."""
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    if token:
        session.headers["Authorization"] = f"Bearer {token}"
    return session


def fetch(
    ref: "ArtifactRef",
    downloads_dir: Path,
    progress_callback: Optional[ProgressCallback] = None,
    timeout: float = 30,
    max_retries: int = 3,
    backoff_base: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Download an artifact to a new temporary file.

    Args:
        ref: Artifact to download
        downloads_dir: Directory for the temporary file
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts
        backoff_base: Delay before the second attempt; doubled for each retry
        sleep: Sleep function (injectable for tests)
        session: Optional requests session

    Returns:
        Path to the downloaded temporary file. The caller owns it.

    Raises:
        DownloadError: If the download fails after all attempts, or the server
            answers with a client error (not retried)

    Example:
        >>> path = fetch(ref, Path("~/.swift-v5/downloads").expanduser())
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    ensure_directory(downloads_dir)
    fd, temp_name = tempfile.mkstemp(
        dir=downloads_dir, prefix=f"{ref.version}-", suffix=f"-{ref.name}"
    )
    os.close(fd)
    destination = Path(temp_name)

    session = session or create_session()
    reporter = _ProgressReporter(progress_callback, ref.size)

    try:
        for attempt in range(max_retries):
            try:
                _download_once(session, ref.url, destination, reporter, timeout)
                logger.info(f"Download complete: {ref.name}")
                return destination
            except HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status is not None and status < 500:
                    raise DownloadError(
                        f"Download of {ref.url} failed with HTTP {status}"
                    ) from e
                error: RequestException = e
            except RequestException as e:
                error = e

            if attempt == max_retries - 1:
                raise DownloadError(
                    f"Download failed after {max_retries} attempts: {error}"
                ) from error

            backoff_seconds = backoff_base * 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {error}. "
                f"Retrying in {backoff_seconds:g}s..."
            )
            sleep(backoff_seconds)

        raise DownloadError("Download failed for unknown reason")
    except BaseException:
        destination.unlink(missing_ok=True)
        logger.debug(f"Removed partial download: {destination}")
        raise


@contextmanager
def temporary_download(
    ref: "ArtifactRef", downloads_dir: Path, **kwargs
) -> Iterator[Path]:
    """
    Download an artifact and remove the temporary file on exit.

    Example:
        >>> with temporary_download(ref, downloads_dir) as archive:
        ...     verify(archive, ref.checksum)
    """
    path = fetch(ref, downloads_dir, **kwargs)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def _download_once(
    session: requests.Session,
    url: str,
    destination: Path,
    reporter: "_ProgressReporter",
    timeout: float,
) -> None:
    """Perform a single streaming download attempt, starting from byte zero."""
    logger.info(f"Downloading from {url}")

    with session.get(
        url,
        stream=True,
        timeout=timeout,
        allow_redirects=True,
        headers={"Accept": "application/octet-stream"},
    ) as response:
        response.raise_for_status()

        content_length = response.headers.get("content-length")
        reporter.start(int(content_length) if content_length else 0)

        with open(destination, "wb") as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
                    reporter.advance(len(chunk))

    reporter.finish()


class _ProgressReporter:
    """Throttled progress reporting whose byte count never moves backwards."""

    def __init__(self, callback: Optional[ProgressCallback], expected_size: int = 0):
        self.callback = callback
        self.total_bytes = expected_size
        self.reported = 0
        self.downloaded = 0
        self.start_time = time.monotonic()
        self.last_report = 0.0

    def start(self, content_length: int):
        self.downloaded = 0
        if content_length:
            self.total_bytes = content_length

    def advance(self, n: int):
        self.downloaded += n
        now = time.monotonic()
        if now - self.last_report >= PROGRESS_INTERVAL:
            self._report(now)

    def finish(self):
        self._report(time.monotonic())

    def _report(self, now: float):
        if not self.callback or self.downloaded < self.reported:
            return

        self.reported = self.downloaded
        self.last_report = now

        elapsed = now - self.start_time
        speed = self.reported / elapsed if elapsed > 0 else 0
        total = self.total_bytes if self.total_bytes > 0 else 0
        remaining = max(total - self.reported, 0)

        self.callback(
            DownloadProgress(
                bytes_downloaded=self.reported,
                total_bytes=total or self.reported,
                percentage=(self.reported / total * 100) if total else 0,
                speed_bps=speed,
                eta_seconds=remaining / speed if speed > 0 else 0,
            )
        )


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"

"""
Hash verification for downloaded toolchain archives.

A downloaded archive is trusted only after its full-content SHA-256 digest
matches the checksum published alongside the release. The comparison uses
``secrets.compare_digest`` and requires exact equality of the normalized
hex digests.
"""

import hashlib
import logging
import secrets
from pathlib import Path
from typing import Callable, Optional

from swift_v5.core.exceptions import VerifyError

logger = logging.getLogger(__name__)

_EXPECTED_LENGTHS = {"sha256": 64, "sha512": 128}


class HashFormatError(VerifyError):
    """Published checksum is not a well-formed hex digest."""

    pass


def compute_file_hash(
    file_path: Path,
    algorithm: str = "sha256",
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> str:
    """
    Compute cryptographic hash of file.

    Args:
        file_path: Path to file
        algorithm: Hash algorithm ('sha256', 'sha512')
        progress_callback: Optional progress callback (bytes_read, total_bytes)

    Returns:
        Hex string of hash

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If algorithm is not supported
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    algorithm = algorithm.lower()
    if algorithm not in _EXPECTED_LENGTHS:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    hasher = hashlib.new(algorithm)
    file_size = file_path.stat().st_size
    bytes_read = 0

    with open(file_path, "rb") as f:
        while chunk := f.read(64 * 1024):
            hasher.update(chunk)
            bytes_read += len(chunk)

            if progress_callback:
                progress_callback(bytes_read, file_size)

    return hasher.hexdigest()


def parse_checksum(expected: str) -> tuple[str, str]:
    """
    Split a published checksum into (algorithm, hex digest).

    Accepts "sha256:<hex>" or a bare hex digest (assumed SHA-256).

    Raises:
        HashFormatError: If the digest is malformed
    """
    text = expected.strip()
    if ":" in text:
        algorithm, digest = text.split(":", 1)
        algorithm = algorithm.lower()
    else:
        algorithm, digest = "sha256", text

    digest = digest.strip().lower()

    if algorithm not in _EXPECTED_LENGTHS:
        raise HashFormatError(f"Unsupported checksum algorithm: {algorithm}")

    if len(digest) != _EXPECTED_LENGTHS[algorithm] or not all(
        c in "0123456789abcdef" for c in digest
    ):
        raise HashFormatError(f"Invalid {algorithm} checksum: {expected!r}")

    return algorithm, digest


def verify(
    path: Path,
    expected: str,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """
    Verify that a file matches its published checksum.

    The file is left in place either way; removing a rejected download is the
    caller's responsibility.

    Args:
        path: Downloaded file
        expected: Published checksum ("sha256:<hex>" or "<hex>")
        progress_callback: Optional progress callback (bytes_read, total_bytes)

    Raises:
        VerifyError: If the digest does not match or is malformed
    """
    algorithm, expected_digest = parse_checksum(expected)
    actual_digest = compute_file_hash(path, algorithm, progress_callback)

    matches = secrets.compare_digest(
        actual_digest.encode("ascii"), expected_digest.encode("ascii")
    )
    logger.debug(
        f"Checksum verification for {path.name}: expected={expected_digest} "
        f"actual={actual_digest} match={matches}"
    )

    if not matches:
        raise VerifyError(
            f"The checksum of the downloaded file {path.name} did not match the "
            f"published value.\n- Expected: {expected_digest}\n- Actual: {actual_digest}\n"
            "The downloaded file may be corrupted or tampered with.",
            expected=expected_digest,
            actual=actual_digest,
        )

    logger.info("Checksum verified successfully")

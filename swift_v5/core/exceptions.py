"""
Centralized exception hierarchy for swift-v5.

Every failure the install pipeline can end in maps to one of the classes
below. Each class carries the process exit code the CLI reports for it.
"""

from typing import List, Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class SwiftV5Error(Exception):
    """Base exception for all swift-v5 errors."""

    exit_code = 1


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(SwiftV5Error):
    """Malformed project pin or user settings."""

    exit_code = 2


class ProjectNotFoundError(ConfigError):
    """Raised when no Package.swift is found in the directory hierarchy."""

    def __init__(self, start: str):
        self.start = start
        super().__init__(
            f"Cannot determine the root of this project (searched upward from {start}). "
            f"Navigate to a directory containing Package.swift."
        )


# ============================================================================
# Remote Exceptions
# ============================================================================


class NetworkError(SwiftV5Error):
    """Transport failure while talking to the release index or download host."""

    exit_code = 3


class DownloadError(NetworkError):
    """Artifact download failed after all retries."""

    pass


class NotFoundError(SwiftV5Error):
    """No release matches the requested version or host platform."""

    exit_code = 4

    def __init__(self, message: str, candidates: Optional[List[str]] = None):
        self.candidates = list(candidates or [])
        if self.candidates:
            message += "\nCandidates:\n" + "\n".join(
                f" - {candidate}" for candidate in self.candidates
            )
        super().__init__(message)


# ============================================================================
# Integrity / Install Exceptions
# ============================================================================


class VerifyError(SwiftV5Error):
    """Downloaded artifact does not match its published checksum."""

    exit_code = 5

    def __init__(self, message: str, expected: str = "", actual: str = ""):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class InstallError(SwiftV5Error):
    """Extraction or filesystem failure while populating the cache."""

    exit_code = 6


class NotInstalledError(SwiftV5Error):
    """Raised when a toolchain version is not present in the cache."""

    exit_code = 7

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Toolchain not installed: {version}")


class InstallCancelled(SwiftV5Error):
    """The user declined to download a toolchain."""

    exit_code = 130

"""
Shared utilities for CLI commands.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from swift_v5.config.project import find_project_root
from swift_v5.config.settings import Settings, load_settings
from swift_v5.core.download import DownloadProgress, format_progress
from swift_v5.toolchain.manager import ToolchainManager
from swift_v5.toolchain.releases import ArtifactRef

logger = logging.getLogger(__name__)


# ============================================================================
# Output Formatting
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


class ProgressPrinter:
    """Renders download progress on a single stderr line."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stderr
        self.active = False

    def __call__(self, progress: DownloadProgress):
        if not self.stream.isatty():
            return
        self.stream.write(f"\r{format_progress(progress):<60}")
        self.stream.flush()
        self.active = True

    def close(self):
        if self.active:
            self.stream.write("\n")
            self.stream.flush()
            self.active = False


# ============================================================================
# Interaction
# ============================================================================


def confirm_download(ref: ArtifactRef, assume_yes: bool = False) -> bool:
    """
    Ask the user before downloading a toolchain.

    Non-interactive sessions are treated as consent.
    """
    if assume_yes or not sys.stdin.isatty():
        return True

    size = f" ({ref.size / 1024 / 1024:.0f} MB)" if ref.size else ""
    answer = input(f"Install toolchain {ref.version}{size} from {ref.url}? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


# ============================================================================
# Context
# ============================================================================


def resolve_project_root(path: Optional[Path] = None) -> Path:
    """
    Resolve the project root from --project-root or the current directory.

    Raises:
        ProjectNotFoundError: If no Package.swift is found upward
    """
    return find_project_root(path)


def create_manager(settings: Optional[Settings] = None) -> ToolchainManager:
    return ToolchainManager(settings or load_settings())

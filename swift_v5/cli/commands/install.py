"""
Install command implementation.

Resolves the project's toolchain requirement, then downloads, verifies and
installs the toolchain unless it is already cached.
"""

import logging

from swift_v5.cli.utils import (
    ProgressPrinter,
    confirm_download,
    create_manager,
    resolve_project_root,
)

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments with:
            - project_root: Optional project root override
            - force: Reinstall even if cached
            - yes: Skip the confirmation prompt

    Returns:
        Exit code (0 for success)
    """
    project_root = resolve_project_root(args.project_root)
    manager = create_manager()

    progress = ProgressPrinter()
    try:
        result = manager.ensure(
            project_root,
            force=args.force,
            progress_callback=progress,
            confirm=lambda ref: confirm_download(ref, assume_yes=args.yes),
        )
    finally:
        progress.close()

    if result.was_cached:
        logger.info(f"Toolchain {result.entry.version} is already installed")
    else:
        logger.info(f"Installed toolchain {result.entry.version}")

    print(result.entry.install_path)
    return 0

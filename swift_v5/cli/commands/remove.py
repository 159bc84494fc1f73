"""
Remove command implementation.
"""

import logging

from swift_v5.cli.utils import create_manager
from swift_v5.core.version import Version

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the remove command.

    Args:
        args: Parsed command-line arguments with:
            - version: Version string to remove

    Returns:
        Exit code (0 for success)
    """
    version = Version.parse(args.version)
    create_manager().remove(version)

    logger.info(f"Removed toolchain {version}")
    return 0

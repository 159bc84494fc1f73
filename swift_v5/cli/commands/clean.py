"""
Clean command implementation.

Removes staging directories and partial downloads left behind by
interrupted runs. Do not run it while another install is in progress.
"""

import logging

from swift_v5.cli.utils import create_manager

logger = logging.getLogger(__name__)


def run(args) -> int:
    manager = create_manager()
    removed = manager.index.clean_staging()

    downloads_dir = manager.settings.downloads_dir
    if downloads_dir.is_dir():
        for partial in downloads_dir.iterdir():
            if not partial.is_file():
                continue
            try:
                partial.unlink()
            except OSError as e:
                logger.warning(f"Could not remove partial download {partial}: {e}")
                continue
            removed += 1

    logger.info(f"Removed {removed} leftover file(s)")
    return 0

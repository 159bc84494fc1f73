"""
List command implementation.

Lists installed toolchains, newest first, marking the one the current
project requires.
"""

import logging

from swift_v5.cli.utils import create_manager
from swift_v5.config.project import find_project_root, resolve
from swift_v5.core.exceptions import ConfigError
from swift_v5.core.version import is_latest

logger = logging.getLogger(__name__)


def _project_pin(args):
    try:
        spec = resolve(find_project_root(args.project_root))
    except ConfigError as e:
        logger.debug(f"No project pin to mark: {e}")
        return None
    return None if is_latest(spec) else spec


def run(args) -> int:
    """
    Run the list command.

    Returns:
        Exit code (0 for success)
    """
    manager = create_manager()
    pin = _project_pin(args)

    entries = list(manager.index.list())
    if not entries:
        logger.info(f"No toolchains installed in {manager.index.cache_root}")
        return 0

    for entry in entries:
        marker = "*" if pin is not None and entry.version == pin else " "
        installed = entry.installed_at.strftime("%Y-%m-%d %H:%M")
        print(f"{marker} {str(entry.version):<16} {installed}  {entry.install_path}")

    return 0

"""
Activate command implementation.

Installs the project's toolchain if needed and links it into the project
as ``llvm-toolchain``.
"""

import logging

from swift_v5.cli.utils import (
    ProgressPrinter,
    confirm_download,
    create_manager,
    resolve_project_root,
)
from swift_v5.toolchain.linking import activate

logger = logging.getLogger(__name__)


def run(args) -> int:
    project_root = resolve_project_root(args.project_root)
    manager = create_manager()

    progress = ProgressPrinter()
    try:
        result = manager.ensure(
            project_root,
            progress_callback=progress,
            confirm=lambda ref: confirm_download(ref, assume_yes=args.yes),
        )
    finally:
        progress.close()

    link = activate(project_root, result.entry)
    print(link)
    return 0

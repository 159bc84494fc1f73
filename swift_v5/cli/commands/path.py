"""
Path command implementation.

Prints where the project's toolchain is installed. Never downloads.
"""

from swift_v5.cli.utils import create_manager, resolve_project_root


def run(args) -> int:
    project_root = resolve_project_root(args.project_root)
    entry = create_manager().resolve_installed(project_root)

    print(entry.bin_dir if args.bin else entry.install_path)
    return 0

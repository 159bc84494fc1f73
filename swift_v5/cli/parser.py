"""
swift-v5 CLI argument parser.

This module implements the command-line interface for swift-v5 using argparse.
"""

import argparse
import importlib
import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from swift_v5 import __version__
from swift_v5.cli.utils import print_error
from swift_v5.core.exceptions import SwiftV5Error

logger = logging.getLogger(__name__)

COMMAND_MAP = {
    "install": "swift_v5.cli.commands.install",
    "path": "swift_v5.cli.commands.path",
    "list": "swift_v5.cli.commands.list",
    "remove": "swift_v5.cli.commands.remove",
    "activate": "swift_v5.cli.commands.activate",
    "clean": "swift_v5.cli.commands.clean",
}


class CLI:
    """swift-v5 command-line interface."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="swift-v5",
            description="swift-v5 - Arm Toolchain for Embedded version manager",
            epilog='Use "swift-v5 COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"swift-v5 {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--project-root",
            type=Path,
            metavar="PATH",
            help="Project root directory (default: nearest directory with Package.swift)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_path_command(subparsers)
        self._add_list_command(subparsers)
        self._add_remove_command(subparsers)
        self._add_activate_command(subparsers)
        self._add_clean_command(subparsers)

        return parser

    def _add_install_command(self, subparsers):
        parser = subparsers.add_parser(
            "install",
            help="Install the project's toolchain",
            description="Download, verify and install the toolchain the project requires",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Reinstall even if the toolchain is already installed",
        )
        parser.add_argument(
            "--yes",
            "-y",
            action="store_true",
            help="Do not ask for confirmation before downloading",
        )

    def _add_path_command(self, subparsers):
        parser = subparsers.add_parser(
            "path",
            help="Print the installed toolchain path",
            description="Print the path of the project's installed toolchain (never downloads)",
        )
        parser.add_argument(
            "--bin",
            action="store_true",
            help="Print the toolchain's bin directory instead",
        )

    def _add_list_command(self, subparsers):
        subparsers.add_parser(
            "list",
            help="List installed toolchains",
            description="List installed toolchains, newest first",
        )

    def _add_remove_command(self, subparsers):
        parser = subparsers.add_parser(
            "remove",
            help="Remove an installed toolchain",
            description="Remove an installed toolchain from the cache",
        )
        parser.add_argument("version", metavar="VERSION", help="Version to remove")

    def _add_activate_command(self, subparsers):
        parser = subparsers.add_parser(
            "activate",
            help="Link the project's toolchain into the project",
            description="Install the project's toolchain if needed and create the llvm-toolchain link",
        )
        parser.add_argument(
            "--yes",
            "-y",
            action="store_true",
            help="Do not ask for confirmation before downloading",
        )

    def _add_clean_command(self, subparsers):
        subparsers.add_parser(
            "clean",
            help="Remove leftovers of interrupted installs",
            description="Remove staging directories and partial downloads left by interrupted runs",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except SwiftV5Error as e:
            print_error(str(e))
            if parsed_args.verbose:
                traceback.print_exc()
            return e.exit_code
        except Exception as e:
            print_error(f"Unexpected error: {e}")
            if parsed_args.verbose:
                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        module_name = COMMAND_MAP.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()

"""swift-v5 command-line interface."""

from swift_v5.cli.parser import CLI, main

__all__ = ["CLI", "main"]

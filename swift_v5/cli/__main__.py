"""
Entry point for running the swift-v5 CLI as a module.

Usage: python -m swift_v5.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()

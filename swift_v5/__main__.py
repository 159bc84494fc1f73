"""
Entry point for running swift-v5 as a module.

Usage: python -m swift_v5 [command] [options]
"""

from swift_v5.cli.parser import main

if __name__ == "__main__":
    main()

"""swift-v5 CLI commands. Each module exposes run(args) -> int."""

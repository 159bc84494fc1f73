"""
swift-v5: version manager for the Arm Toolchain for Embedded (ATfE).

Resolves the toolchain a project pins in ``v5.toml``, then downloads,
verifies and installs it into a shared per-user cache.
"""

__version__ = "0.1.0"

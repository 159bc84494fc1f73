"""Core building blocks: versions, platforms, filesystem, download and verification."""

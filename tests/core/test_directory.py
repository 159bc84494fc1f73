"""
Unit tests for the data directory layout.
"""

import sys
from pathlib import Path

import pytest

from swift_v5.core.directory import (
    ensure_directory,
    get_data_dir,
    get_manifest_path,
    get_staging_dir,
)


class TestGetDataDir:
    def test_environment_override(self, isolated_home):
        assert get_data_dir() == isolated_home

    @pytest.mark.skipif(sys.platform == "win32", reason="uses USERPROFILE on Windows")
    def test_default_under_home(self, monkeypatch, tmp_path):
        monkeypatch.delenv("SWIFT_V5_HOME")
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_data_dir() == tmp_path / ".swift-v5"


class TestLayout:
    def test_staging_and_manifest_inside_cache_root(self, tmp_path):
        root = tmp_path / "toolchains"
        assert get_staging_dir(root) == root / ".tmp"
        assert get_manifest_path(root) == root / "manifest.json"

    def test_ensure_directory_is_idempotent(self, tmp_path):
        target = tmp_path / "a" / "b"
        assert ensure_directory(target) == target
        assert ensure_directory(target).is_dir()

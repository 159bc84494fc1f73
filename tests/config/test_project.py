"""
Unit tests for project discovery and pin resolution.
"""

import pytest

from helpers import write_pin
from swift_v5.config.project import (
    ProjectConfig,
    find_project_root,
    load_project_config,
    resolve,
)
from swift_v5.core.exceptions import ConfigError, ProjectNotFoundError
from swift_v5.core.version import LATEST, Version


class TestFindProjectRoot:
    """Test find_project_root()."""

    def test_finds_root_from_itself(self, project_dir):
        assert find_project_root(project_dir) == project_dir.resolve()

    def test_finds_root_from_subdirectory(self, project_dir):
        nested = project_dir / "Sources" / "App"
        nested.mkdir(parents=True)
        assert find_project_root(nested) == project_dir.resolve()

    def test_manifest_name_is_case_insensitive(self, tmp_path):
        root = tmp_path / "proj"
        root.mkdir()
        (root / "package.SWIFT").write_text("")
        assert find_project_root(root) == root.resolve()

    def test_nearest_root_wins(self, project_dir):
        inner = project_dir / "Packages" / "Inner"
        inner.mkdir(parents=True)
        (inner / "Package.swift").write_text("")
        assert find_project_root(inner / ".") == inner.resolve()

    def test_no_project(self, tmp_path, monkeypatch):
        lonely = tmp_path / "lonely"
        lonely.mkdir()
        monkeypatch.setattr(
            "swift_v5.config.project.MANIFEST_FILE_NAME", "Unlikely-Manifest.swift"
        )

        with pytest.raises(ProjectNotFoundError) as exc_info:
            find_project_root(lonely)

        assert isinstance(exc_info.value, ConfigError)
        assert "Package.swift" in str(exc_info.value)


class TestLoadProjectConfig:
    """Test load_project_config()."""

    def test_missing_file(self, project_dir):
        assert load_project_config(project_dir) is None

    def test_pin(self, project_dir):
        write_pin(project_dir, "20.1.0")
        assert load_project_config(project_dir) == ProjectConfig(llvm_version="20.1.0")

    def test_unknown_keys_ignored(self, project_dir):
        (project_dir / "v5.toml").write_text('other = 1\nllvm-version = "19.1.5"\n')
        assert load_project_config(project_dir).llvm_version == "19.1.5"

    def test_empty_file(self, project_dir):
        (project_dir / "v5.toml").write_text("")
        assert load_project_config(project_dir) == ProjectConfig()

    def test_invalid_toml(self, project_dir):
        (project_dir / "v5.toml").write_text("llvm-version = \n")
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_project_config(project_dir)

    def test_non_string_pin(self, project_dir):
        (project_dir / "v5.toml").write_text("llvm-version = 20\n")
        with pytest.raises(ConfigError, match="must be a string"):
            load_project_config(project_dir)


class TestResolve:
    """Test resolve()."""

    def test_no_file_means_latest(self, project_dir):
        assert resolve(project_dir) is LATEST

    def test_no_key_means_latest(self, project_dir):
        (project_dir / "v5.toml").write_text("# nothing pinned\n")
        assert resolve(project_dir) is LATEST

    def test_concrete_pin(self, project_dir):
        write_pin(project_dir, "20.1.0")
        assert resolve(project_dir) == Version(20, 1, 0)

    def test_pin_with_leading_v(self, project_dir):
        write_pin(project_dir, "v19.1")
        assert resolve(project_dir) == Version(19, 1, 0)

    def test_malformed_pin(self, project_dir):
        write_pin(project_dir, "twenty")
        with pytest.raises(ConfigError, match="Invalid 'llvm-version'"):
            resolve(project_dir)

    def test_resolve_is_read_only(self, project_dir):
        write_pin(project_dir, "20.1.0")
        before = sorted(p.name for p in project_dir.iterdir())
        resolve(project_dir)
        assert sorted(p.name for p in project_dir.iterdir()) == before

"""
Pytest configuration and shared fixtures for swift-v5 tests.
"""

from pathlib import Path

import pytest

from helpers import API_URL, REPO, make_tar_xz
from swift_v5.config.settings import Settings
from swift_v5.core.platform import PlatformId, clear_platform_cache
from swift_v5.toolchain.cache import CacheIndex


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch) -> Path:
    """Keep every test away from the real ~/.swift-v5 and GitHub token."""
    home = tmp_path / "swift-v5-home"
    monkeypatch.setenv("SWIFT_V5_HOME", str(home))
    for var in (
        "SWIFT_V5_CACHE_DIR",
        "SWIFT_V5_RELEASE_REPO",
        "SWIFT_V5_API_URL",
        "GITHUB_TOKEN",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_platform_cache()
    yield home
    clear_platform_cache()


@pytest.fixture
def linux_platform() -> PlatformId:
    return PlatformId(os="Linux", arches=("x86_64",))


@pytest.fixture
def toolchain_archive(tmp_path) -> Path:
    """A valid toolchain archive for 20.1.0 on Linux x86_64."""
    return make_tar_xz(tmp_path / "ATfE-20.1.0-Linux-x86_64.tar.xz")


@pytest.fixture
def settings(isolated_home) -> Settings:
    return Settings(
        data_dir=isolated_home,
        api_url=API_URL,
        release_repo=REPO,
        backoff_base=0,
        lock_timeout=5,
    )


@pytest.fixture
def cache_index(settings) -> CacheIndex:
    return CacheIndex(settings.cache_dir, lock_dir=settings.lock_dir, lock_timeout=5)


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """A project root without a pin."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "Package.swift").write_text("// swift-tools-version:5.9\n")
    return root

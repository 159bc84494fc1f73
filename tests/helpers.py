"""
Helpers shared by the swift-v5 test suite: archive builders and fake
GitHub release payloads.
"""

import hashlib
import io
import tarfile
import zipfile
from pathlib import Path
from typing import Optional

from swift_v5.core.platform import PlatformId
from swift_v5.core.version import Version
from swift_v5.toolchain.cache import CacheIndex
from swift_v5.toolchain.releases import ArtifactRef

API_URL = "https://api.github.test"
REPO = "arm/arm-toolchain"
RELEASES_URL = f"{API_URL}/repos/{REPO}/releases"
DOWNLOAD_BASE = "https://github.test/arm/arm-toolchain/releases/download"


# ============================================================================
# Archives
# ============================================================================


def make_tar_xz(path: Path, root: str = "ATfE-20.1.0-Linux-x86_64", files=None) -> Path:
    """Build a .tar.xz whose members live under a single root directory."""
    files = files or {"bin/clang": b"#!/bin/sh\necho clang\n", "README.md": b"ATfE\n"}
    with tarfile.open(path, "w:xz") as tar:
        for name, data in files.items():
            member = tarfile.TarInfo(f"{root}/{name}" if root else name)
            member.size = len(data)
            member.mode = 0o755
            tar.addfile(member, io.BytesIO(data))
    return path


def make_zip(path: Path, root: str = "ATfE-20.1.0-Windows-x86_64", files=None) -> Path:
    files = files or {"bin/clang.exe": b"MZ", "README.md": b"ATfE\n"}
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in files.items():
            zf.writestr(f"{root}/{name}" if root else name, data)
    return path


def sha256_of(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


# ============================================================================
# Release index
# ============================================================================


def asset_url(version: str, name: str) -> str:
    return f"{DOWNLOAD_BASE}/release-{version}-ATfE/{name}"


def asset_json(name: str, size: int = 1024, digest: Optional[str] = None) -> dict:
    version = name.split("-")[1]
    asset = {
        "name": name,
        "size": size,
        "browser_download_url": asset_url(version, name),
    }
    if digest:
        asset["digest"] = digest
    return asset


def release_json(version: str, assets=None, draft=False, prerelease=False) -> dict:
    if assets is None:
        assets = [
            asset_json(f"ATfE-{version}-Linux-x86_64.tar.xz"),
            asset_json(f"ATfE-{version}-Linux-AArch64.tar.xz"),
            asset_json(f"ATfE-{version}-Darwin-universal.dmg"),
            asset_json(f"ATfE-{version}-Windows-x86_64.zip"),
        ]
    return {
        "tag_name": f"release-{version}-ATfE",
        "name": f"Arm Toolchain for Embedded {version}",
        "draft": draft,
        "prerelease": prerelease,
        "assets": assets,
    }


def make_ref(
    url: str,
    checksum: str,
    name: str = "ATfE-20.1.0-Linux-x86_64.tar.xz",
    version: str = "20.1.0",
    size: int = 0,
) -> ArtifactRef:
    return ArtifactRef(
        version=Version.parse(version),
        url=url,
        checksum=checksum,
        platform=PlatformId(os="Linux", arches=("x86_64",)),
        name=name,
        size=size,
    )


# ============================================================================
# Cache and projects
# ============================================================================


def populate_cache(index: CacheIndex, *versions: str) -> None:
    """Create fake installed toolchains directly on disk."""
    for version in versions:
        slot = index.slot_for(Version.parse(version))
        (slot / "bin").mkdir(parents=True)
        (slot / "bin" / "clang").write_text("clang")


def write_pin(project_dir: Path, version: str) -> None:
    (project_dir / "v5.toml").write_text(f'llvm-version = "{version}"\n')

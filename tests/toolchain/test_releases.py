"""
Unit tests for the GitHub release locator.
"""

import pytest
import requests
import responses
from responses import matchers

from helpers import (
    API_URL,
    REPO,
    RELEASES_URL,
    asset_json,
    asset_url,
    release_json,
)
from swift_v5.core.exceptions import NetworkError, NotFoundError
from swift_v5.core.platform import PlatformId
from swift_v5.core.version import LATEST, Version
from swift_v5.toolchain.releases import (
    GitHubReleaseIndex,
    tag_for,
    version_from_tag,
)

DIGEST = "ab" * 32


@pytest.fixture
def index():
    return GitHubReleaseIndex(repo=REPO, api_url=API_URL, timeout=5)


def add_sidecars(version, digest=DIGEST):
    for name in (
        f"ATfE-{version}-Linux-x86_64.tar.xz",
        f"ATfE-{version}-Darwin-universal.dmg",
    ):
        responses.add(
            responses.GET,
            asset_url(version, name) + ".sha256",
            body=f"{digest}  {name}\n",
        )


class TestTags:
    def test_tag_round_trip(self):
        assert tag_for(Version(20, 1, 0)) == "release-20.1.0-ATfE"
        assert version_from_tag("release-20.1.0-ATfE") == Version(20, 1, 0)

    def test_foreign_tags_ignored(self):
        assert version_from_tag("v20.1.0") is None
        assert version_from_tag("release-20.1.0") is None
        assert version_from_tag("release-banana-ATfE") is None


class TestLocateLatest:
    """Test locate(LATEST, ...)."""

    @responses.activate
    def test_picks_highest_stable_version(self, index, linux_platform):
        responses.add(
            responses.GET,
            RELEASES_URL,
            json=[
                release_json("19.1.5"),
                release_json("21.1.1-rc1"),
                release_json("20.1.0"),
                release_json("22.0.0", prerelease=True),
                release_json("23.0.0", draft=True),
                {"tag_name": "llvm-project-99.0.0", "assets": []},
            ],
        )
        add_sidecars("20.1.0")

        ref = index.locate(LATEST, linux_platform)

        assert ref.version == Version(20, 1, 0)
        assert ref.name == "ATfE-20.1.0-Linux-x86_64.tar.xz"
        assert ref.url == asset_url("20.1.0", ref.name)
        assert ref.checksum == DIGEST
        assert ref.platform == linux_platform
        assert ref.size == 1024

    @responses.activate
    def test_paginates(self, index, linux_platform, monkeypatch):
        monkeypatch.setattr("swift_v5.toolchain.releases.PER_PAGE", 2)
        responses.add(
            responses.GET,
            RELEASES_URL,
            match=[matchers.query_param_matcher({"per_page": "2", "page": "1"})],
            json=[release_json("18.1.3"), release_json("19.1.5")],
        )
        responses.add(
            responses.GET,
            RELEASES_URL,
            match=[matchers.query_param_matcher({"per_page": "2", "page": "2"})],
            json=[release_json("20.1.0")],
        )
        add_sidecars("20.1.0")

        assert index.locate(LATEST, linux_platform).version == Version(20, 1, 0)

    @responses.activate
    def test_no_releases(self, index, linux_platform):
        responses.add(responses.GET, RELEASES_URL, json=[])

        with pytest.raises(NotFoundError, match="No stable toolchain releases"):
            index.locate(LATEST, linux_platform)

    @responses.activate
    def test_server_error(self, index, linux_platform):
        responses.add(responses.GET, RELEASES_URL, status=502)

        with pytest.raises(NetworkError):
            index.locate(LATEST, linux_platform)

    @responses.activate
    def test_connection_error(self, index, linux_platform):
        responses.add(
            responses.GET, RELEASES_URL, body=requests.exceptions.ConnectionError("offline")
        )

        with pytest.raises(NetworkError, match="offline"):
            index.locate(LATEST, linux_platform)

    @responses.activate
    def test_rate_limited(self, index, linux_platform):
        responses.add(responses.GET, RELEASES_URL, status=403)

        with pytest.raises(NetworkError, match="GITHUB_TOKEN"):
            index.locate(LATEST, linux_platform)

    @responses.activate
    def test_available_versions(self, index):
        responses.add(
            responses.GET,
            RELEASES_URL,
            json=[release_json("19.1.5"), release_json("21.1.1"), release_json("20.1.0-rc2")],
        )

        assert index.available_versions() == [Version(21, 1, 1), Version(19, 1, 5)]


class TestLocatePinned:
    """Test locate(Version, ...)."""

    @responses.activate
    def test_exact_tag(self, index, linux_platform):
        responses.add(
            responses.GET, f"{RELEASES_URL}/tags/release-19.1.5-ATfE", json=release_json("19.1.5")
        )
        add_sidecars("19.1.5")

        ref = index.locate(Version(19, 1, 5), linux_platform)

        assert ref.version == Version(19, 1, 5)
        assert ref.name == "ATfE-19.1.5-Linux-x86_64.tar.xz"

    @responses.activate
    def test_unknown_version(self, index, linux_platform):
        responses.add(responses.GET, f"{RELEASES_URL}/tags/release-99.0.0-ATfE", status=404)

        with pytest.raises(NotFoundError, match="release-99.0.0-ATfE"):
            index.locate(Version(99, 0, 0), linux_platform)

    @responses.activate
    def test_unknown_version_lists_available(self, index, linux_platform):
        responses.add(responses.GET, f"{RELEASES_URL}/tags/release-99.0.0-ATfE", status=404)
        responses.add(
            responses.GET, RELEASES_URL, json=[release_json("19.1.5"), release_json("20.1.0")]
        )

        with pytest.raises(NotFoundError) as exc_info:
            index.locate(Version(99, 0, 0), linux_platform)

        assert exc_info.value.candidates == ["20.1.0", "19.1.5"]

    @responses.activate
    def test_no_build_for_platform(self, index):
        responses.add(
            responses.GET,
            f"{RELEASES_URL}/tags/release-20.1.0-ATfE",
            json=release_json(
                "20.1.0", assets=[asset_json("ATfE-20.1.0-Linux-x86_64.tar.xz")]
            ),
        )
        windows_arm = PlatformId("Windows", ("AArch64",))

        with pytest.raises(NotFoundError) as exc_info:
            index.locate(Version(20, 1, 0), windows_arm)

        assert exc_info.value.candidates == ["ATfE-20.1.0-Linux-x86_64.tar.xz"]

    @responses.activate
    def test_mac_universal_asset(self, index):
        responses.add(
            responses.GET, f"{RELEASES_URL}/tags/release-20.1.0-ATfE", json=release_json("20.1.0")
        )
        add_sidecars("20.1.0")
        mac = PlatformId("Darwin", ("AArch64", "universal"))

        assert index.locate(Version(20, 1, 0), mac).name == "ATfE-20.1.0-Darwin-universal.dmg"


class TestChecksum:
    """Test checksum discovery."""

    @responses.activate
    def test_api_digest_preferred(self, index, linux_platform):
        digest = "cd" * 32
        responses.add(
            responses.GET,
            f"{RELEASES_URL}/tags/release-20.1.0-ATfE",
            json=release_json(
                "20.1.0",
                assets=[asset_json("ATfE-20.1.0-Linux-x86_64.tar.xz", digest=f"sha256:{digest}")],
            ),
        )

        ref = index.locate(Version(20, 1, 0), linux_platform)

        assert ref.checksum == digest
        assert len(responses.calls) == 1

    @responses.activate
    def test_sidecar_uppercase_normalized(self, index, linux_platform):
        responses.add(
            responses.GET, f"{RELEASES_URL}/tags/release-20.1.0-ATfE", json=release_json("20.1.0")
        )
        add_sidecars("20.1.0", digest=DIGEST.upper())

        assert index.locate(Version(20, 1, 0), linux_platform).checksum == DIGEST

    @responses.activate
    def test_missing_sidecar(self, index, linux_platform):
        responses.add(
            responses.GET, f"{RELEASES_URL}/tags/release-20.1.0-ATfE", json=release_json("20.1.0")
        )
        responses.add(
            responses.GET,
            asset_url("20.1.0", "ATfE-20.1.0-Linux-x86_64.tar.xz") + ".sha256",
            status=404,
        )

        with pytest.raises(NotFoundError, match="No published checksum"):
            index.locate(Version(20, 1, 0), linux_platform)

    @responses.activate
    def test_malformed_sidecar(self, index, linux_platform):
        responses.add(
            responses.GET, f"{RELEASES_URL}/tags/release-20.1.0-ATfE", json=release_json("20.1.0")
        )
        responses.add(
            responses.GET,
            asset_url("20.1.0", "ATfE-20.1.0-Linux-x86_64.tar.xz") + ".sha256",
            body="<html>oops</html>",
        )

        with pytest.raises(NotFoundError, match="Malformed checksum"):
            index.locate(Version(20, 1, 0), linux_platform)


class TestSession:
    @responses.activate
    def test_token_sent_as_bearer(self, linux_platform):
        index = GitHubReleaseIndex(repo=REPO, api_url=API_URL, token="s3cret")
        responses.add(responses.GET, RELEASES_URL, json=[])

        with pytest.raises(NotFoundError):
            index.locate(LATEST, linux_platform)

        assert responses.calls[0].request.headers["Authorization"] == "Bearer s3cret"


@pytest.mark.integration
class TestRealIndex:
    """Queries the real GitHub API."""

    def test_latest_linux_release(self):
        ref = GitHubReleaseIndex().locate(LATEST, PlatformId("Linux", ("x86_64",)))
        assert ref.name.startswith("ATfE-")
        assert len(ref.checksum) == 64

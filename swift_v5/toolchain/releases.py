"""
Release locator for Arm Toolchain for Embedded (ATfE) builds.

Maps a version requirement and host platform to a concrete downloadable
artifact by querying the GitHub releases API of the toolchain repository.
Releases are tagged ``release-<version>-ATfE``; any other tag is ignored.

The locator only reads release metadata. It never downloads or verifies
archive content.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import requests
from requests.exceptions import RequestException

from swift_v5.core.download import create_session
from swift_v5.core.exceptions import NetworkError, NotFoundError
from swift_v5.core.platform import PlatformId
from swift_v5.core.verification import HashFormatError, parse_checksum
from swift_v5.core.version import (
    InvalidVersionError,
    Version,
    VersionSpec,
    is_latest,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_REPO = "arm/arm-toolchain"
RELEASE_PREFIX = "release-"
RELEASE_SUFFIX = "-ATfE"
PER_PAGE = 100
MAX_PAGES = 10


@dataclass(frozen=True)
class ArtifactRef:
    """A downloadable toolchain archive for one version and platform."""

    version: Version
    """Exact release version"""

    url: str
    """Direct download URL of the archive"""

    checksum: str
    """Lowercase SHA-256 hex digest of the archive"""

    platform: PlatformId
    """Platform the archive was selected for"""

    name: str
    """Asset file name, e.g. ATfE-20.1.0-Linux-x86_64.tar.xz"""

    size: int = 0
    """Published size in bytes (0 if unknown)"""


def tag_for(version: Version) -> str:
    """Release tag of a version, e.g. release-20.1.0-ATfE."""
    return f"{RELEASE_PREFIX}{version}{RELEASE_SUFFIX}"


def version_from_tag(tag: str) -> Optional[Version]:
    """Parse the version out of a release tag; None for foreign tags."""
    if not (tag.startswith(RELEASE_PREFIX) and tag.endswith(RELEASE_SUFFIX)):
        return None
    try:
        return Version.parse(tag[len(RELEASE_PREFIX) : -len(RELEASE_SUFFIX)])
    except InvalidVersionError:
        logger.debug(f"Ignoring release tag with unparseable version: {tag}")
        return None


class GitHubReleaseIndex:
    """
    Release locator backed by the GitHub releases API.

    Example:
        >>> index = GitHubReleaseIndex()
        >>> ref = index.locate(LATEST, detect_platform())
        >>> print(ref.version, ref.url)
    """

    def __init__(
        self,
        repo: str = DEFAULT_REPO,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or create_session(token)
        self.session.headers.setdefault("Accept", "application/vnd.github+json")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def locate(self, spec: VersionSpec, platform: PlatformId) -> ArtifactRef:
        """
        Find the artifact for a version requirement on a platform.

        Args:
            spec: LATEST or a concrete Version
            platform: Host platform

        Returns:
            ArtifactRef with an exact version and published checksum

        Raises:
            NotFoundError: No such release, or no asset for this platform
            NetworkError: The release index could not be queried
        """
        if is_latest(spec):
            logger.debug("Looking for latest stable release")
            version, release = self._latest_release()
        else:
            logger.debug(f"Looking for release {spec}")
            version, release = spec, self._pinned_release(spec)

        asset = self._select_asset(release, platform, version)
        checksum = self._checksum_for(asset)

        ref = ArtifactRef(
            version=version,
            url=asset["browser_download_url"],
            checksum=checksum,
            platform=platform,
            name=asset["name"],
            size=int(asset.get("size") or 0),
        )
        logger.debug(f"Located {ref.name} for {platform} at {ref.url}")
        return ref

    def available_versions(self) -> List[Version]:
        """All stable release versions, newest first."""
        versions = []
        for release in self._iter_releases():
            version = self._stable_version(release)
            if version is not None:
                versions.append(version)
        return sorted(versions, reverse=True)

    # ------------------------------------------------------------------
    # Release lookup
    # ------------------------------------------------------------------

    def _latest_release(self):
        best = None
        for release in self._iter_releases():
            version = self._stable_version(release)
            if version is not None and (best is None or version > best[0]):
                best = (version, release)

        if best is None:
            raise NotFoundError(f"No stable toolchain releases found in {self.repo}")

        logger.info(f"Latest toolchain release is {best[0]}")
        return best

    def _stable_version(self, release: Dict[str, Any]) -> Optional[Version]:
        if release.get("draft") or release.get("prerelease"):
            return None
        version = version_from_tag(release.get("tag_name", ""))
        if version is None or version.is_prerelease:
            return None
        return version

    def _iter_releases(self) -> Iterator[Dict[str, Any]]:
        url = f"{self.api_url}/repos/{self.repo}/releases"
        for page in range(1, MAX_PAGES + 1):
            releases = self._get_json(url, params={"per_page": PER_PAGE, "page": page})
            if not isinstance(releases, list):
                raise NetworkError(f"Unexpected response from {url}")
            yield from releases
            if len(releases) < PER_PAGE:
                return

    def _pinned_release(self, version: Version) -> Dict[str, Any]:
        try:
            return self._release_by_tag(tag_for(version))
        except NotFoundError as e:
            try:
                known = self.available_versions()
            except NetworkError:
                raise e
            raise NotFoundError(str(e), candidates=[str(v) for v in known]) from e

    def _release_by_tag(self, tag: str) -> Dict[str, Any]:
        url = f"{self.api_url}/repos/{self.repo}/releases/tags/{tag}"
        release = self._get_json(url, not_found=f"No release tagged {tag} in {self.repo}")
        if release.get("draft"):
            raise NotFoundError(f"Release {tag} is not published")
        return release

    # ------------------------------------------------------------------
    # Asset selection
    # ------------------------------------------------------------------

    def _select_asset(
        self, release: Dict[str, Any], platform: PlatformId, version: Version
    ) -> Dict[str, Any]:
        assets = release.get("assets") or []
        for asset in assets:
            if platform.matches(asset.get("name", "")):
                return asset

        raise NotFoundError(
            f"Toolchain {version} has no build for {platform}",
            candidates=[asset.get("name", "") for asset in assets],
        )

    def _checksum_for(self, asset: Dict[str, Any]) -> str:
        digest = asset.get("digest")
        if digest:
            try:
                algorithm, value = parse_checksum(digest)
            except HashFormatError:
                logger.debug(f"Ignoring malformed digest for {asset['name']}: {digest}")
            else:
                if algorithm == "sha256":
                    return value

        url = f"{asset['browser_download_url']}.sha256"
        logger.debug(f"Fetching checksum from {url}")
        text = self._get_text(url, not_found=f"No published checksum for {asset['name']}")

        tokens = text.split()
        if not tokens:
            raise NotFoundError(f"Empty checksum file for {asset['name']}")
        try:
            return parse_checksum(tokens[0])[1]
        except HashFormatError as e:
            raise NotFoundError(f"Malformed checksum file for {asset['name']}: {e}") from e

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _get(self, url: str, not_found: str, **kwargs) -> requests.Response:
        try:
            response = self.session.get(url, timeout=self.timeout, **kwargs)
        except RequestException as e:
            raise NetworkError(f"Failed to query {url}: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(not_found)
        if response.status_code in (403, 429):
            raise NetworkError(
                f"Request to {url} was refused (HTTP {response.status_code}). "
                "You may be rate limited; set GITHUB_TOKEN to authenticate."
            )

        try:
            response.raise_for_status()
        except RequestException as e:
            raise NetworkError(f"Failed to query {url}: {e}") from e
        return response

    def _get_json(self, url: str, not_found: str = "Not found", **kwargs) -> Any:
        response = self._get(url, not_found, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from {url}: {e}") from e

    def _get_text(self, url: str, not_found: str) -> str:
        return self._get(url, not_found).text

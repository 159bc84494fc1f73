"""
Toolchain version descriptors.

Supports semantic versions in the format ``major.minor.patch`` with optional
pre-release (``-rc1``) and build (``+build.5``) metadata, plus the ``LATEST``
sentinel used before a request has been resolved against the release index.

Example:
    >>> v1 = Version.parse("19.1.5")
    >>> v2 = Version.parse("20.1.0-rc1")
    >>> v2 > v1
    True
    >>> str(Version.parse("v20.1"))
    '20.1.0'
"""

import re
from typing import Optional, Tuple, Union

from swift_v5.core.exceptions import ConfigError

_VERSION_RE = re.compile(
    r"""
    ^v?
    (?P<major>0|[1-9]\d*)
    \.(?P<minor>0|[1-9]\d*)
    (?:\.(?P<patch>0|[1-9]\d*))?
    (?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
    (?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
    $
    """,
    re.VERBOSE,
)


class InvalidVersionError(ConfigError):
    """Version string is not semver-like."""

    pass


class Version:
    """
    Concrete toolchain version.

    Ordering follows semver precedence: the numeric triple first, then a
    release sorts above its pre-releases. Build metadata is compared last so
    that ordering stays consistent with equality.
    """

    __slots__ = ("major", "minor", "patch", "prerelease", "build")

    def __init__(
        self,
        major: int,
        minor: int,
        patch: int = 0,
        prerelease: Optional[str] = None,
        build: Optional[str] = None,
    ):
        if min(major, minor, patch) < 0:
            raise InvalidVersionError(
                f"Version components must be non-negative: {major}.{minor}.{patch}"
            )
        self.major = major
        self.minor = minor
        self.patch = patch
        self.prerelease = prerelease or None
        self.build = build or None

    @classmethod
    def parse(cls, version_string: str) -> "Version":
        """
        Parse a version string.

        Args:
            version_string: e.g. "20.1.0", "v19.1", "20.1.0-rc1+build.2"

        Returns:
            Parsed Version

        Raises:
            InvalidVersionError: If the string is not semver-like
        """
        if not isinstance(version_string, str):
            raise InvalidVersionError(
                f"Version must be a string, got {type(version_string).__name__}"
            )

        match = _VERSION_RE.match(version_string.strip())
        if not match:
            raise InvalidVersionError(
                f"Invalid version format: {version_string!r}. "
                f"Expected format: major.minor.patch[-prerelease][+build]"
            )

        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch") or 0),
            prerelease=match.group("prerelease"),
            build=match.group("build"),
        )

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    def _prerelease_key(self) -> Tuple:
        # A release (no suffix) outranks every pre-release of the same triple.
        if self.prerelease is None:
            return (1,)
        identifiers = []
        for part in self.prerelease.split("."):
            if part.isdigit():
                identifiers.append((0, int(part), ""))
            else:
                identifiers.append((1, 0, part))
        return (0, tuple(identifiers))

    def _key(self) -> Tuple:
        return (
            self.major,
            self.minor,
            self.patch,
            self._prerelease_key(),
            self.build or "",
        )

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() >= other._key()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text

    def __repr__(self) -> str:
        return f"Version('{self}')"


class _Latest:
    """Sentinel requesting the newest stable release."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "LATEST"

    def __str__(self) -> str:
        return "latest"

    def __reduce__(self):
        return (_Latest, ())


LATEST = _Latest()

VersionSpec = Union[Version, _Latest]


def is_latest(spec: VersionSpec) -> bool:
    """Check whether a spec still needs resolving against the release index."""
    return spec is LATEST

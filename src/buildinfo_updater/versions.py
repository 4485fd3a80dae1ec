"""Semantic version handling for release channels.

Only canonical ``MAJOR.MINOR.PATCH`` strings are accepted: no leading
``v``, no pre-release suffix and no leading zeros.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from buildinfo_updater.exceptions import VersionError

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9][0-9]*)\.(?P<minor>0|[1-9][0-9]*)\.(?P<patch>0|[1-9][0-9]*)$"
)


@dataclass(frozen=True, order=True)
class Version:
    """A parsed ``MAJOR.MINOR.PATCH`` version."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, version_str: str) -> Version:
        """Parse a canonical version string.

        Raises:
            VersionError: if the string is not canonical semver.
        """
        m = _SEMVER_RE.match(version_str)
        if m is None:
            raise VersionError(f"Not a MAJOR.MINOR.PATCH version: {version_str!r}")
        return cls(
            major=int(m.group("major")),
            minor=int(m.group("minor")),
            patch=int(m.group("patch")),
        )

    @property
    def short(self) -> str:
        """The ``major.minor`` version line."""
        return f"{self.major}.{self.minor}"

    @property
    def major_tag(self) -> str:
        return str(self.major)

    def same_line(self, other: Version) -> bool:
        return (self.major, self.minor) == (other.major, other.minor)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def is_semver(version_str: str) -> bool:
    """Return True if *version_str* is a canonical version."""
    return _SEMVER_RE.match(version_str) is not None


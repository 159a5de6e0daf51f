"""
Semantic versions.

Parses MAJOR.MINOR.PATCH[-pre][+build] versions with an optional leading
"v" and orders them by semver 2.0.0 precedence. Build metadata is kept but
never affects ordering.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Tuple

_VERSION_RE = re.compile(r"^\s*v?([0-9]+(?:\.[0-9]+)*)(.*)\Z", re.ASCII)
_EXTRA_RE = re.compile(
    r"^(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?\s*\Z",
    re.ASCII,
)


class VersionError(ValueError):
    """Raised when a string is not a valid semantic version."""


@dataclass(frozen=True)
class Version:
    """A parsed semantic version."""

    major: int
    minor: int
    patch: int
    pre_release: Tuple[str, ...] = field(default_factory=tuple)
    build_metadata: str = ""

    @classmethod
    def parse(cls, text: str) -> "Version":
        """
        Parse a semantic version.

        Args:
            text: Version string, e.g. "1.25.0", "v1.30.6" or "1.0.0-rc.1+abc".

        Returns:
            The parsed Version.

        Raises:
            VersionError: If the string is not a semantic version.
        """
        match = _VERSION_RE.match(text)
        if not match:
            raise VersionError(f'could not parse "{text}" as version')

        numbers, extra = match.groups()
        components = numbers.split(".")
        if len(components) != 3:
            raise VersionError(f'illegal version string "{text}"')

        for component in components:
            if len(component) > 1 and component.startswith("0"):
                raise VersionError(
                    f'illegal zero-prefixed version component "{component}" in "{text}"'
                )

        extra_match = _EXTRA_RE.match(extra)
        if not extra_match:
            raise VersionError(f'could not parse pre-release/metadata ({extra}) in version "{text}"')

        pre_release, build = extra_match.groups()
        return cls(
            major=int(components[0]),
            minor=int(components[1]),
            patch=int(components[2]),
            pre_release=tuple(pre_release.split(".")) if pre_release else (),
            build_metadata=build or "",
        )

    def compare(self, other: str) -> int:
        """
        Compare against another version string.

        Returns:
            -1, 0 or 1 as this version is lower, equal or higher.

        Raises:
            VersionError: If the other string is not a semantic version.
        """
        return self.compare_to(Version.parse(other))

    def compare_to(self, other: "Version") -> int:
        mine = (self.major, self.minor, self.patch)
        theirs = (other.major, other.minor, other.patch)
        if mine != theirs:
            return -1 if mine < theirs else 1

        return _compare_pre_release(self.pre_release, other.pre_release)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre_release:
            text += "-" + ".".join(self.pre_release)
        if self.build_metadata:
            text += "+" + self.build_metadata
        return text


def _compare_pre_release(left: Tuple[str, ...], right: Tuple[str, ...]) -> int:
    # A version without pre-release identifiers is the higher one.
    if not left and not right:
        return 0
    if not left:
        return 1
    if not right:
        return -1

    for a, b in zip(left, right):
        if a == b:
            continue

        a_numeric, b_numeric = a.isdigit(), b.isdigit()
        if a_numeric and b_numeric:
            return -1 if int(a) < int(b) else 1
        if a_numeric:
            return -1
        if b_numeric:
            return 1
        return -1 if a < b else 1

    if len(left) == len(right):
        return 0
    return -1 if len(left) < len(right) else 1


def parse_semantic(text: str) -> Version:
    """Shorthand for Version.parse."""
    return Version.parse(text)

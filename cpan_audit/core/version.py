"""Version parsing and ordering for CPAN-style version strings."""

import functools
import re
from dataclasses import dataclass, field
from typing import Any, Tuple

from .errors import MalformedVersion

_VERSION_PATTERN = re.compile(r"^(?P<numeric>\d+(?:\.\d+)*)(?P<rest>.*)$")
_LEADING_DIGITS = re.compile(r"^\d+")


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class VersionValue:
    """A parsed version: numeric segments plus an optional dev/pre-release marker.

    ``1.2.3`` becomes segments ``(1, 2, 3)``. A ``_`` or ``-`` followed by a
    suffix (``1.0_01``, ``2.0-TRIAL``) marks a pre-release that sorts below the
    release with the same segments; the suffix's leading number is the
    pre-release ordinal.
    """

    segments: Tuple[int, ...]
    prerelease: bool = False
    ordinal: int = 0
    text: str = field(default="", compare=False)

    @classmethod
    def parse(cls, text: str) -> "VersionValue":
        """Parse a version string.

        Args:
            text: Version string such as ``1.2.3``, ``v5.36.0`` or ``0.24_01``

        Returns:
            Parsed version value

        Raises:
            MalformedVersion: If the string has no leading numeric segment
        """
        if not isinstance(text, str):
            raise MalformedVersion(str(text), "not a string")

        raw = text.strip()
        body = raw[1:] if raw[:1] == "v" else raw

        match = _VERSION_PATTERN.match(body)
        if not match:
            raise MalformedVersion(text, "no numeric segment")

        segments = tuple(int(part) for part in match.group("numeric").split("."))
        rest = match.group("rest")

        prerelease = False
        ordinal = 0
        if rest:
            if rest[0] not in "_-":
                raise MalformedVersion(text, f"unexpected trailing text {rest!r}")
            suffix = rest[1:]
            if suffix:
                prerelease = True
                digits = _LEADING_DIGITS.match(suffix)
                ordinal = int(digits.group(0)) if digits else 0

        return cls(segments=segments, prerelease=prerelease, ordinal=ordinal, text=raw)

    @property
    def _key(self) -> Tuple[Any, ...]:
        # Trailing zero segments are dropped so that 1.0 == 1.0.0 and the
        # tuple comparison matches zero-padded segment comparison.
        segments = list(self.segments)
        while segments and segments[-1] == 0:
            segments.pop()
        if self.prerelease:
            return (tuple(segments), 0, self.ordinal)
        return (tuple(segments), 1, 0)

    def compare(self, other: "VersionValue") -> int:
        """Return -1, 0 or 1 as this version is less than, equal to or greater than ``other``."""
        mine, theirs = self._key, other._key
        if mine < theirs:
            return -1
        if mine > theirs:
            return 1
        return 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionValue):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: "VersionValue") -> bool:
        if not isinstance(other, VersionValue):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __str__(self) -> str:
        return self.text or self.canonical()

    def canonical(self) -> str:
        """Normalized spelling of this version, e.g. ``1.0_1``."""
        numeric = ".".join(str(segment) for segment in self.segments)
        if self.prerelease:
            return f"{numeric}_{self.ordinal}"
        return numeric


def parse_version(text: str) -> VersionValue:
    """Convenience wrapper around :meth:`VersionValue.parse`."""
    return VersionValue.parse(text)


def compare_versions(left: str, right: str) -> int:
    """Compare two version strings; returns -1, 0, or 1."""
    return VersionValue.parse(left).compare(VersionValue.parse(right))

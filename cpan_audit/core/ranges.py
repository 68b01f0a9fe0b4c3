"""Range expressions and interval algebra over :class:`VersionValue`."""

import functools
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

from .errors import MalformedRange, MalformedVersion
from .version import VersionValue

LOWER_OPERATORS = (">=", ">")
UPPER_OPERATORS = ("<=", "<")
OPERATORS = frozenset({">=", "<=", ">", "<", "==", "!="})

# Leading punctuation is taken as the operator token so that typos such as
# "=>1.0" or "~1.0" are rejected instead of silently read as a bare version.
_CLAUSE_PATTERN = re.compile(r"^(?P<op>[^\w\s.]*)\s*(?P<body>.*)$", re.DOTALL)

UNION_SEPARATOR = "||"
EMPTY_EXPRESSION = ">0,<0"


@dataclass(frozen=True)
class Interval:
    """A contiguous run of versions.

    ``None`` on either side means unbounded in that direction.
    """

    lower: Optional[VersionValue] = None
    lower_inclusive: bool = True
    upper: Optional[VersionValue] = None
    upper_inclusive: bool = True

    @classmethod
    def point(cls, version: VersionValue) -> "Interval":
        return cls(version, True, version, True)

    @property
    def is_empty(self) -> bool:
        if self.lower is None or self.upper is None:
            return False
        if self.lower > self.upper:
            return True
        if self.lower == self.upper:
            return not (self.lower_inclusive and self.upper_inclusive)
        return False

    @property
    def is_universal(self) -> bool:
        return self.lower is None and self.upper is None

    def contains(self, version: VersionValue) -> bool:
        if self.lower is not None:
            if version < self.lower or (version == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if version > self.upper or (version == self.upper and not self.upper_inclusive):
                return False
        return True

    def intersect(self, other: "Interval") -> Optional["Interval"]:
        """Return the overlap of two intervals, or None when they are disjoint."""
        low = max(self, other, key=_lower_key)
        high = min(self, other, key=_upper_key)
        result = Interval(low.lower, low.lower_inclusive, high.upper, high.upper_inclusive)
        if result.is_empty:
            return None
        return result

    def overlaps(self, other: "Interval") -> bool:
        return self.intersect(other) is not None

    def subtract(self, other: "Interval") -> List["Interval"]:
        """Remove ``other`` from this interval, leaving up to two pieces."""
        pieces = []
        if other.lower is not None:
            below = Interval(None, True, other.lower, not other.lower_inclusive)
            left = self.intersect(below)
            if left is not None:
                pieces.append(left)
        if other.upper is not None:
            above = Interval(other.upper, not other.upper_inclusive, None, True)
            right = self.intersect(above)
            if right is not None:
                pieces.append(right)
        return pieces

    def to_expression(self) -> str:
        """Serialize to a comma-separated clause list that parses back to this interval."""
        if self.is_universal:
            return ""
        if (
            self.lower is not None
            and self.lower == self.upper
            and self.lower_inclusive
            and self.upper_inclusive
        ):
            return f"=={self.lower}"
        clauses = []
        if self.lower is not None:
            clauses.append(f"{'>=' if self.lower_inclusive else '>'}{self.lower}")
        if self.upper is not None:
            clauses.append(f"{'<=' if self.upper_inclusive else '<'}{self.upper}")
        return ",".join(clauses)

    def __str__(self) -> str:
        left = "(-inf" if self.lower is None else f"{'[' if self.lower_inclusive else '('}{self.lower}"
        right = "+inf)" if self.upper is None else f"{self.upper}{']' if self.upper_inclusive else ')'}"
        return f"{left}, {right}"


def _lower_key(interval: Interval) -> Tuple[Any, ...]:
    if interval.lower is None:
        return (0,)
    # an exclusive lower bound starts just after an inclusive one
    return (1, interval.lower, 0 if interval.lower_inclusive else 1)


def _upper_key(interval: Interval) -> Tuple[Any, ...]:
    if interval.upper is None:
        return (1,)
    return (0, interval.upper, 1 if interval.upper_inclusive else 0)


def _touches(left: Interval, right: Interval) -> bool:
    """True when ``right`` (which starts no earlier than ``left``) overlaps or abuts ``left``."""
    if left.upper is None or right.lower is None:
        return True
    if right.lower < left.upper:
        return True
    if right.lower == left.upper:
        return left.upper_inclusive or right.lower_inclusive
    return False


class RangeSet:
    """An immutable union of sorted, disjoint, non-adjacent intervals."""

    __slots__ = ("_intervals",)

    def __init__(self, intervals: Iterable[Interval] = ()) -> None:
        object.__setattr__(self, "_intervals", self._normalize(intervals))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("RangeSet is immutable")

    @staticmethod
    def _normalize(intervals: Iterable[Interval]) -> Tuple[Interval, ...]:
        candidates = sorted(
            (interval for interval in intervals if not interval.is_empty),
            key=_lower_key,
        )
        merged: List[Interval] = []
        for interval in candidates:
            if merged and _touches(merged[-1], interval):
                last = merged[-1]
                high = max(last, interval, key=_upper_key)
                merged[-1] = Interval(last.lower, last.lower_inclusive, high.upper, high.upper_inclusive)
            else:
                merged.append(interval)
        return tuple(merged)

    @classmethod
    def universal(cls) -> "RangeSet":
        return cls([Interval()])

    @classmethod
    def empty(cls) -> "RangeSet":
        return cls()

    @property
    def intervals(self) -> Tuple[Interval, ...]:
        return self._intervals

    @property
    def is_empty(self) -> bool:
        return not self._intervals

    @property
    def is_universal(self) -> bool:
        return len(self._intervals) == 1 and self._intervals[0].is_universal

    def contains(self, version: VersionValue) -> bool:
        return any(interval.contains(version) for interval in self._intervals)

    def overlaps(self, other: "RangeSet") -> bool:
        """True when at least one version lies in both sets."""
        return any(
            mine.overlaps(theirs)
            for mine in self._intervals
            for theirs in other._intervals
        )

    def intersection(self, other: "RangeSet") -> "RangeSet":
        pieces = []
        for mine in self._intervals:
            for theirs in other._intervals:
                overlap = mine.intersect(theirs)
                if overlap is not None:
                    pieces.append(overlap)
        return RangeSet(pieces)

    def union(self, other: "RangeSet") -> "RangeSet":
        return RangeSet(self._intervals + other._intervals)

    def difference(self, other: "RangeSet") -> "RangeSet":
        remaining = list(self._intervals)
        for removed in other._intervals:
            remaining = [piece for interval in remaining for piece in interval.subtract(removed)]
        return RangeSet(remaining)

    def __and__(self, other: "RangeSet") -> "RangeSet":
        return self.intersection(other)

    def __or__(self, other: "RangeSet") -> "RangeSet":
        return self.union(other)

    def __sub__(self, other: "RangeSet") -> "RangeSet":
        return self.difference(other)

    def __iter__(self):
        return iter(self._intervals)

    def __len__(self) -> int:
        return len(self._intervals)

    def __bool__(self) -> bool:
        return not self.is_empty

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RangeSet):
            return NotImplemented
        return self._intervals == other._intervals

    def __hash__(self) -> int:
        return hash(self._intervals)

    def __str__(self) -> str:
        if self.is_empty:
            return EMPTY_EXPRESSION
        return f" {UNION_SEPARATOR} ".join(interval.to_expression() for interval in self._intervals)

    def __repr__(self) -> str:
        body = " | ".join(str(interval) for interval in self._intervals) or "empty"
        return f"RangeSet({body})"


def _tighter_lower(current: Interval, version: VersionValue, inclusive: bool) -> Interval:
    candidate = Interval(version, inclusive, current.upper, current.upper_inclusive)
    if _lower_key(candidate) > _lower_key(current):
        return candidate
    return current


def _tighter_upper(current: Interval, version: VersionValue, inclusive: bool) -> Interval:
    candidate = Interval(current.lower, current.lower_inclusive, version, inclusive)
    if _upper_key(candidate) < _upper_key(current):
        return candidate
    return current


def _parse_conjunction(expression: str, text: str) -> RangeSet:
    """Parse comma-separated clauses into the intersection of their constraints."""
    interval = Interval()
    excluded: List[VersionValue] = []

    for raw_clause in text.split(","):
        clause = raw_clause.strip()
        if not clause or clause == "0":
            continue

        match = _CLAUSE_PATTERN.match(clause)
        operator = match.group("op")
        body = match.group("body").strip()

        if operator and operator not in OPERATORS:
            raise MalformedRange(expression, f"unrecognized operator {operator!r}")

        if not body:
            if operator == "==":
                continue
            raise MalformedRange(expression, f"operator {operator!r} has no version")

        try:
            version = VersionValue.parse(body)
        except MalformedVersion as exc:
            raise MalformedRange(expression, str(exc)) from exc

        if not operator:
            # a bare version is a minimum, as in cpanfile and META prereqs
            operator = ">="

        if operator in LOWER_OPERATORS:
            interval = _tighter_lower(interval, version, operator == ">=")
        elif operator in UPPER_OPERATORS:
            interval = _tighter_upper(interval, version, operator == "<=")
        elif operator == "==":
            interval = _tighter_lower(interval, version, True)
            interval = _tighter_upper(interval, version, True)
        else:
            excluded.append(version)

    result = RangeSet([interval])
    for version in excluded:
        result = result.difference(RangeSet([Interval.point(version)]))
    return result


@functools.lru_cache(maxsize=2048)
def _parse_cached(text: str) -> RangeSet:
    result = RangeSet.empty()
    for alternative in text.split(UNION_SEPARATOR):
        result = result.union(_parse_conjunction(text, alternative))
    return result


def parse_range(text: Optional[str]) -> RangeSet:
    """Parse a range expression into a normalized :class:`RangeSet`.

    Clauses separated by commas are intersected; alternatives separated by
    ``||`` are unioned. An empty expression or ``"0"`` is unconstrained.

    Args:
        text: Range expression such as ``">=1.0,<2.0"`` or ``"!=1.5"``

    Returns:
        Normalized range set (possibly empty for contradictory constraints)

    Raises:
        MalformedRange: On an unknown operator or an unparseable operand
    """
    if text is None:
        return RangeSet.universal()
    if not isinstance(text, str):
        raise MalformedRange(str(text), "range must be a string")
    return _parse_cached(text.strip())

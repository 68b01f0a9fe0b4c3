"""Version parsing, range algebra and advisory matching for cpan-audit."""

from .errors import AuditError, IndexConstructionError, MalformedRange, MalformedVersion
from .ranges import Interval, RangeSet, parse_range
from .version import VersionValue, compare_versions, parse_version

__all__ = [
    "AuditError",
    "IndexConstructionError",
    "Interval",
    "MalformedRange",
    "MalformedVersion",
    "RangeSet",
    "VersionValue",
    "compare_versions",
    "parse_range",
    "parse_version",
]

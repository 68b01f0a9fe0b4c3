"""cpan-audit - audit CPAN distributions against known security advisories."""

__version__ = "0.2.0"

from .core.errors import AuditError, IndexConstructionError, MalformedRange, MalformedVersion
from .core.ranges import Interval, RangeSet, parse_range
from .core.version import VersionValue
from .db.index import AdvisoryIndex, AdvisoryRecord
from .db.loader import load_index
from .core.matcher import AuditReport, AuditResult, QueryStatus, RangeMatcher

__all__ = [
    "AdvisoryIndex",
    "AdvisoryRecord",
    "AuditError",
    "AuditReport",
    "AuditResult",
    "IndexConstructionError",
    "Interval",
    "MalformedRange",
    "MalformedVersion",
    "QueryStatus",
    "RangeMatcher",
    "RangeSet",
    "VersionValue",
    "load_index",
    "parse_range",
]

"""Advisory database index and loader."""

from .index import AdvisoryIndex, AdvisoryRecord
from .loader import DatabaseConfig, DatabaseLoader, load_index

__all__ = [
    "AdvisoryIndex",
    "AdvisoryRecord",
    "DatabaseConfig",
    "DatabaseLoader",
    "load_index",
]

"""Loading the advisory database from disk."""

import gzip
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.errors import IndexConstructionError
from ..utils.logging import get_logger
from ..utils.performance import PerformanceMonitor, benchmark
from .index import AdvisoryIndex


@dataclass
class DatabaseConfig:
    """Configuration for the local advisory database."""

    database_path: Path

    def __post_init__(self) -> None:
        """Validate configuration."""
        self.database_path = Path(self.database_path)
        if not self.database_path.exists():
            raise ValueError(f"Database path does not exist: {self.database_path}")
        if not self.database_path.is_file():
            raise ValueError(f"Database path is not a file: {self.database_path}")


class DatabaseLoader:
    """Reads a JSON (optionally gzipped) advisory database into an :class:`AdvisoryIndex`."""

    def __init__(
        self,
        config: DatabaseConfig,
        performance_monitor: Optional[PerformanceMonitor] = None
    ) -> None:
        self.config = config
        self.logger = get_logger("DatabaseLoader")
        self.performance_monitor = performance_monitor or PerformanceMonitor()

    def read_raw(self) -> Dict[str, Any]:
        """Read and decode the database file.

        Raises:
            IndexConstructionError: If the file is not valid JSON
        """
        path = self.config.database_path
        opener = gzip.open if path.suffix == ".gz" else open

        try:
            with opener(path, "rt", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            raise IndexConstructionError(f"Failed to read advisory database {path}: {e}") from e

    @benchmark
    def load(self) -> AdvisoryIndex:
        """Load the database and build the index.

        Returns:
            Read-only advisory index
        """
        with self.performance_monitor.measure("load_database"):
            raw = self.read_raw()

        with self.performance_monitor.measure("build_index"):
            index = AdvisoryIndex.from_mapping(raw)

        stats = index.stats()
        self.logger.info(
            "Loaded %d advisories for %d distributions from %s",
            stats["total_advisories"],
            stats["total_packages"],
            self.config.database_path,
        )
        return index


def load_index(database_path: Path, performance_monitor: Optional[PerformanceMonitor] = None) -> AdvisoryIndex:
    """Convenience function to load an index from a file path."""
    return DatabaseLoader(DatabaseConfig(database_path), performance_monitor).load()

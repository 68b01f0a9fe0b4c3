"""Utility functions and helpers for cpan-audit."""

from .logging import setup_logging, get_logger
from .performance import PerformanceMonitor, benchmark
from .path_utils import find_manifests, is_ignored_path

__all__ = [
    "setup_logging",
    "get_logger",
    "PerformanceMonitor",
    "benchmark",
    "find_manifests",
    "is_ignored_path",
]

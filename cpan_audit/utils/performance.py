"""Performance monitoring utilities for cpan-audit."""

import functools
import logging
import os
import time
import tracemalloc
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar

from rich.console import Console
from rich.table import Table

F = TypeVar('F', bound=Callable[..., Any])

BENCHMARK_ENV_VAR = "CPAN_AUDIT_VERBOSE_BENCHMARK"


@dataclass
class PerformanceMetrics:
    """Container for performance metrics."""

    function_name: str
    execution_time: float
    memory_usage: Optional[float] = None
    memory_peak: Optional[float] = None

    def __post_init__(self) -> None:
        """Convert memory usage to MB for readability."""
        if self.memory_usage is not None:
            self.memory_usage = self.memory_usage / 1024 / 1024
        if self.memory_peak is not None:
            self.memory_peak = self.memory_peak / 1024 / 1024


class PerformanceMonitor:
    """Timing (and optionally memory) tracking for named operations."""

    def __init__(self, enable_memory_tracking: bool = False, console: Optional[Console] = None) -> None:
        self.metrics: List[PerformanceMetrics] = []
        self.enable_memory_tracking = enable_memory_tracking
        self.console = console or Console(stderr=True)

        if enable_memory_tracking and not tracemalloc.is_tracing():
            tracemalloc.start()

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        """Context manager for measuring performance.

        Args:
            name: Name of the operation being measured
        """
        start_time = time.perf_counter()
        start_memory = None

        if self.enable_memory_tracking:
            start_memory = tracemalloc.get_traced_memory()[0]

        try:
            yield
        finally:
            execution_time = time.perf_counter() - start_time

            if self.enable_memory_tracking:
                current_memory, peak_memory = tracemalloc.get_traced_memory()
                memory_usage = current_memory - start_memory if start_memory is not None else 0
            else:
                memory_usage = None
                peak_memory = None

            self.metrics.append(PerformanceMetrics(
                function_name=name,
                execution_time=execution_time,
                memory_usage=memory_usage,
                memory_peak=peak_memory,
            ))

    def get_summary(self) -> Dict[str, Any]:
        """Get performance summary.

        Returns:
            Dictionary with performance summary, empty if nothing was measured
        """
        if not self.metrics:
            return {}

        total_time = sum(m.execution_time for m in self.metrics)
        summary: Dict[str, Any] = {
            "total_executions": len(self.metrics),
            "total_time": total_time,
            "average_time": total_time / len(self.metrics),
            "operations": {m.function_name: m.execution_time for m in self.metrics},
        }
        if self.enable_memory_tracking:
            summary["max_peak_memory"] = max(m.memory_peak or 0 for m in self.metrics)
        return summary

    def merge(self, other: "PerformanceMonitor") -> None:
        """Fold another monitor's metrics into this one."""
        self.metrics.extend(other.metrics)

    def print_summary(self) -> None:
        """Print performance summary to console."""
        summary = self.get_summary()
        if not summary:
            return

        table = Table(title="Performance Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Total Executions", str(summary["total_executions"]))
        table.add_row("Total Time", f"{summary['total_time']:.4f}s")
        table.add_row("Average Time", f"{summary['average_time']:.4f}s")
        for name, seconds in summary["operations"].items():
            table.add_row(name, f"{seconds:.4f}s")

        if self.enable_memory_tracking:
            table.add_row("Max Peak Memory", f"{summary['max_peak_memory']:.2f} MB")

        self.console.print(table)


def benchmark(func: F) -> F:
    """Log the wall time of ``func`` when CPAN_AUDIT_VERBOSE_BENCHMARK is set."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start_time

        if os.environ.get(BENCHMARK_ENV_VAR):
            logging.getLogger("cpan_audit.performance").info(
                "%s took %.4f seconds", func.__name__, elapsed
            )
        return result
    return wrapper  # type: ignore[return-value]

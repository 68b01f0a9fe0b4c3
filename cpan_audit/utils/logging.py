"""Logging utilities for cpan-audit."""

import logging
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

LOGGER_PREFIX = "cpan_audit"


class AuditLogger:
    """Thin wrapper around a stdlib logger that writes through rich to stderr."""

    def __init__(self, name: str, level: Optional[int] = None) -> None:
        self.logger = logging.getLogger(f"{LOGGER_PREFIX}.{name}")
        if level is not None:
            self.logger.setLevel(level)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        self.logger.info(msg, *args, extra=kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self.logger.warning(msg, *args, extra=kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""
        self.logger.error(msg, *args, extra=kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self.logger.debug(msg, *args, extra=kwargs)


def _rich_handler() -> RichHandler:
    console = Console(
        stderr=True,
        theme=Theme({
            "info": "cyan",
            "warning": "yellow",
            "error": "red",
            "debug": "dim",
        }),
    )
    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter(fmt="%(name)s: %(message)s", datefmt="[%X]"))
    return handler


def setup_logging(
    level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    verbose: bool = False
) -> None:
    """Configure the cpan_audit logger hierarchy.

    Args:
        level: Logging level
        log_file: Optional log file path
        verbose: Enable debug logging
    """
    if verbose:
        level = logging.DEBUG

    root = logging.getLogger(LOGGER_PREFIX)
    root.setLevel(level)

    # Remove existing handlers to avoid duplicates on repeated CLI invocations
    root.handlers.clear()
    root.addHandler(_rich_handler())
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root.addHandler(file_handler)
    root.propagate = False


def get_logger(name: str) -> AuditLogger:
    """Get a cpan-audit logger instance.

    Args:
        name: Logger name, nested under ``cpan_audit``

    Returns:
        Logger wrapper
    """
    return AuditLogger(name)

"""Exception types raised by the cpan-audit engine."""

from typing import Optional


class AuditError(Exception):
    """Base class for all cpan-audit errors."""


class MalformedVersion(AuditError, ValueError):
    """A version token could not be parsed."""

    def __init__(self, text: str, reason: Optional[str] = None) -> None:
        self.text = text
        message = f"Malformed version: {text!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MalformedRange(AuditError, ValueError):
    """A range expression has an unknown operator or a malformed operand."""

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"Malformed range {expression!r}: {reason}")


class IndexConstructionError(AuditError):
    """The advisory database could not be turned into an index."""

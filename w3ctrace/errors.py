"""w3ctrace error hierarchy and exceptions."""

from __future__ import annotations

from typing import Optional


class W3CTraceError(Exception):
    """Base exception for all w3ctrace errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(W3CTraceError):
    """Raised when configuration is invalid or conflicting."""
    pass


class ParseError(W3CTraceError, ValueError):
    """
    Raised when a traceparent value is malformed.

    Always recoverable: ingress paths treat it as "no trace present".
    """

    def __init__(
        self,
        message: str,
        *,
        input: str,
        field: Optional[str] = None,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ):
        details = {}
        if field is not None:
            details["field"] = field
        details["from"] = repr(input)
        super().__init__(message, details)
        self.input = input
        self.field = field
        self.expected = expected
        self.actual = actual


class EntropyError(W3CTraceError):
    """Raised when the system random source cannot be read. Not recoverable."""
    pass

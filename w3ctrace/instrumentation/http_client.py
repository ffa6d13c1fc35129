"""HTTP client helpers for context propagation."""

from __future__ import annotations

from typing import Any, Optional

from w3ctrace.context import from_context, inject
from w3ctrace.tracer.trace import Trace


def inject_headers(headers: Any, trace: Optional[Trace] = None) -> Any:
    """
    Inject traceparent into the provided headers if a trace is given or current.

    Returns the same headers mapping for convenience.
    """
    if trace is None:
        trace = from_context()
    return inject(headers, trace)

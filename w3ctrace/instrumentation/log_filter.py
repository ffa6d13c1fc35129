"""Logging filter that stamps the current trace onto log records."""

from __future__ import annotations

import logging

from w3ctrace.context import from_context
from w3ctrace.tracer.trace import serialize


class TraceContextFilter(logging.Filter):
    """
    Adds ``trace_id``, ``parent_id`` and ``traceparent`` to every record.

    Attributes are empty strings when no trace is current, so format strings
    like ``%(trace_id)s`` never fail.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        tr = from_context()
        if tr is not None and tr.is_valid():
            record.trace_id = tr.trace_id.hex()
            record.parent_id = tr.parent_id.hex()
        else:
            record.trace_id = ""
            record.parent_id = ""
        record.traceparent = serialize(tr)
        return True

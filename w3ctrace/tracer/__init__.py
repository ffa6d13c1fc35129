"""Trace value, identifiers and the traceparent codec."""

from w3ctrace.tracer.ids import (
    FlagVersion,
    SpanID,
    TraceID,
    UlidIdGenerator,
    new_flag,
    new_span_id,
    new_trace_id,
    new_version,
)
from w3ctrace.tracer.trace import (
    HEADER_NAME,
    Trace,
    ensure,
    is_valid,
    new,
    parse_header,
    parse_string,
    serialize,
)

__all__ = [
    "FlagVersion",
    "SpanID",
    "TraceID",
    "UlidIdGenerator",
    "new_flag",
    "new_span_id",
    "new_trace_id",
    "new_version",
    "HEADER_NAME",
    "Trace",
    "ensure",
    "is_valid",
    "new",
    "parse_header",
    "parse_string",
    "serialize",
]

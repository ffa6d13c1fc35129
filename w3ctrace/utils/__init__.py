"""Utility functions for w3ctrace."""

from w3ctrace.utils.helpers import (
    get_header_values,
    set_header,
    trace_id_to_int,
    span_id_to_int,
    int_to_trace_id,
    int_to_span_id,
)

__all__ = [
    "get_header_values",
    "set_header",
    "trace_id_to_int",
    "span_id_to_int",
    "int_to_trace_id",
    "int_to_span_id",
]

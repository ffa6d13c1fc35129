"""Helper functions for OpenTelemetry compatibility and header carriers."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Any, List, Optional

from w3ctrace.tracer.ids import SpanID, TraceID


def trace_id_to_int(trace_id: TraceID) -> int:
    """
    Convert a TraceID to the 128-bit int OpenTelemetry uses.

    Args:
        trace_id: 16-byte trace id

    Returns:
        OTel trace_id as int
    """
    return int.from_bytes(trace_id, "big")


def span_id_to_int(span_id: SpanID) -> int:
    """Convert a SpanID to the 64-bit int OpenTelemetry uses."""
    return int.from_bytes(span_id, "big")


def int_to_trace_id(value: int) -> TraceID:
    """
    Convert an OTel trace_id int to a TraceID.

    Raises:
        ValueError: if the value does not fit in 128 bits
    """
    if not 0 <= value < 1 << 128:
        raise ValueError(f"trace id out of range: {value}")
    return TraceID(value.to_bytes(TraceID.width, "big"))


def int_to_span_id(value: int) -> SpanID:
    """Convert an OTel span_id int to a SpanID."""
    if not 0 <= value < 1 << 64:
        raise ValueError(f"span id out of range: {value}")
    return SpanID(value.to_bytes(SpanID.width, "big"))


def _as_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def get_header_values(carrier: Any, key: str) -> Optional[List[str]]:
    """
    Look up every value stored under ``key``, ignoring case.

    Understands:
    - objects with ``getlist`` (Starlette ``Headers``, multidicts)
    - objects with ``get_all`` (``email.message.Message``, ``wsgiref`` headers)
    - plain mappings whose values are strings or lists of strings
    - sequences of ``(key, value)`` pairs (gRPC metadata)

    Returns:
        The list of values, or None when the key is absent
    """
    if carrier is None:
        return None
    lowered = key.lower()
    values: List[str] = []
    if hasattr(carrier, "getlist"):
        values = _as_list(carrier.getlist(lowered))
    elif hasattr(carrier, "get_all"):
        values = _as_list(carrier.get_all(lowered) or [])
    elif isinstance(carrier, Mapping):
        for k, v in carrier.items():
            if str(k).lower() == lowered:
                values.extend(_as_list(v))
    else:
        for item in carrier:
            k, v = item[0], item[1]
            if str(k).lower() == lowered:
                values.append(v.decode("ascii") if isinstance(v, bytes) else str(v))
    return values or None


def set_header(carrier: Any, key: str, value: str) -> None:
    """
    Store ``key: value`` on a carrier, replacing any value under the same
    key in another case.
    """
    lowered = key.lower()
    if isinstance(carrier, list):
        carrier[:] = [item for item in carrier if str(item[0]).lower() != lowered]
        carrier.append((lowered, value))
        return
    if isinstance(carrier, dict):
        for existing in [k for k in carrier if str(k).lower() == lowered]:
            del carrier[existing]
        carrier[lowered] = value
        return
    if isinstance(carrier, MutableMapping) or hasattr(carrier, "__setitem__"):
        # Starlette MutableHeaders and friends are case-insensitive already.
        carrier[lowered] = value
        return
    raise TypeError(f"cannot set headers on {type(carrier).__name__}")

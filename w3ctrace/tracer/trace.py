"""The Trace value and its traceparent codec.

Traceparent: Version-TraceID-ParentID-Flags

See https://www.w3.org/TR/trace-context/#trace-context-http-headers-format
"""

from __future__ import annotations

import base64
import binascii
import dataclasses
from dataclasses import dataclass, field
from typing import Any, Optional

from opentelemetry.trace import SpanContext as OTelSpanContext, TraceFlags

from w3ctrace import runtime_config
from w3ctrace.errors import ParseError
from w3ctrace.tracer.ids import (
    FlagVersion,
    SpanID,
    TraceID,
    new_flag,
    new_span_id,
    new_trace_id,
    new_version,
)
from w3ctrace.utils.helpers import (
    get_header_values,
    int_to_span_id,
    int_to_trace_id,
    span_id_to_int,
    trace_id_to_int,
)

HEADER_NAME = "traceparent"

SUPPORTED_VERSION = new_version()

# (name, width in bytes) in wire order
_FIELDS = (
    ("version", FlagVersion.width),
    ("traceid", TraceID.width),
    ("parentid", SpanID.width),
    ("flags", FlagVersion.width),
)


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class Trace:
    """Immutable trace context: version, trace id, parent span id, flags."""

    trace_id: TraceID = field(default_factory=TraceID)
    parent_id: SpanID = field(default_factory=SpanID)
    flags: FlagVersion = field(default_factory=FlagVersion)
    version: FlagVersion = field(default_factory=new_version)

    def __post_init__(self) -> None:
        # Coerce plain bytes; the width check lives in the id types.
        for name, kind in (
            ("trace_id", TraceID),
            ("parent_id", SpanID),
            ("flags", FlagVersion),
            ("version", FlagVersion),
        ):
            value = getattr(self, name)
            if type(value) is not kind:
                object.__setattr__(self, name, kind(value))

    @classmethod
    def new(cls, flags: Optional[int] = None) -> "Trace":
        """Fresh root trace: new trace id, zero parent id."""
        if flags is None:
            flags = runtime_config.get_default_flags()
        return cls(trace_id=new_trace_id(), flags=new_flag(flags))

    def is_valid(self) -> bool:
        return self.version == SUPPORTED_VERSION and not self.trace_id.is_zero()

    @property
    def sampled(self) -> bool:
        return bool(self.flags[0] & 0x01)

    def ensure(self) -> "Trace":
        """
        Return this trace if valid, else a copy with a new trace id.

        A zero parent id is filled with a new span id as well; flags are kept.
        """
        if self.is_valid():
            return self
        changes = {"trace_id": new_trace_id()}
        if self.parent_id.is_zero():
            changes["parent_id"] = new_span_id()
        if self.version != SUPPORTED_VERSION:
            changes["version"] = new_version()
        return dataclasses.replace(self, **changes)

    def with_parent(self, parent_id: SpanID) -> "Trace":
        return dataclasses.replace(self, parent_id=parent_id)

    def serialize(self) -> str:
        if not self.is_valid():
            return ""
        return f"{self.version.hex()}-{self.trace_id.hex()}-{self.parent_id.hex()}-{self.flags.hex()}"

    def __str__(self) -> str:
        return self.serialize()

    def short_string(self) -> str:
        """Compact form: base64url(trace id) "." base64url(parent id), 34 chars."""
        if not self.is_valid():
            return ""
        return f"{_b64(self.trace_id)}.{_b64(self.parent_id)}"

    def to_span_context(self, is_remote: bool = True) -> OTelSpanContext:
        """Convert to an OpenTelemetry SpanContext; the parent id becomes the span id."""
        return OTelSpanContext(
            trace_id=trace_id_to_int(self.trace_id),
            span_id=span_id_to_int(self.parent_id),
            is_remote=is_remote,
            trace_flags=TraceFlags(self.flags[0]),
        )

    @classmethod
    def from_span_context(cls, span_context: OTelSpanContext) -> "Trace":
        return cls(
            trace_id=int_to_trace_id(span_context.trace_id),
            parent_id=int_to_span_id(span_context.span_id),
            flags=new_flag(int(span_context.trace_flags)),
        )


def parse_string(hdr: str) -> Trace:
    """
    Parse ``version-traceid-parentid-flags`` (``00-hex-hex-01``).

    The version is not checked here; use ``Trace.is_valid``.

    Raises:
        ParseError: wrong number of parts, wrong field length or non-hex text
    """
    want_parts = len(_FIELDS)
    parts = hdr.split("-", want_parts)
    if len(parts) != want_parts:
        raise ParseError(f"wanted {want_parts} parts, got {len(parts)}", input=hdr)

    decoded = []
    for (name, width), part in zip(_FIELDS, parts):
        if len(part) != width * 2:
            raise ParseError(
                f"{name} must be {width * 2} hex, got {len(part)}",
                input=hdr,
                field=name,
                expected=width * 2,
                actual=len(part),
            )
        try:
            decoded.append(binascii.unhexlify(part))
        except (binascii.Error, ValueError) as e:
            raise ParseError(f"parse {name} as {part}: {e}", input=hdr, field=name) from e

    version, trace_id, parent_id, flags = decoded
    return Trace(
        trace_id=TraceID(trace_id),
        parent_id=SpanID(parent_id),
        flags=FlagVersion(flags),
        version=FlagVersion(version),
    )


def parse_header(headers: Any) -> Optional[Trace]:
    """
    Parse the traceparent header out of a header collection.

    Returns:
        None when the header is absent

    Raises:
        ParseError: the header is present but malformed
    """
    values = get_header_values(headers, HEADER_NAME)
    if not values:
        return None
    return parse_string(values[0])


def serialize(tr: Optional[Trace]) -> str:
    """Traceparent value for ``tr``; "" when absent or invalid."""
    if tr is None:
        return ""
    return tr.serialize()


def is_valid(tr: Optional[Trace]) -> bool:
    return tr is not None and tr.is_valid()


def ensure(tr: Optional[Trace]) -> Trace:
    """Guarantee a valid trace, minting one when ``tr`` is absent or invalid."""
    if tr is None:
        tr = Trace(flags=new_flag(runtime_config.get_default_flags()))
    return tr.ensure()


def new() -> Trace:
    return Trace.new()

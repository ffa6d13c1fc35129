"""Fixed-width identifier types and their generators."""

from __future__ import annotations

import os

from ulid import monotonic
from opentelemetry.sdk.trace.id_generator import IdGenerator

from w3ctrace.errors import EntropyError


class _FixedBytes(bytes):
    """Immutable byte string of exactly ``width`` bytes."""

    width = 0

    def __new__(cls, value: bytes = b""):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"{cls.__name__} needs bytes, got {type(value).__name__}")
        if not value:
            value = bytes(cls.width)
        value = bytes(value)
        if len(value) != cls.width:
            raise ValueError(f"{cls.__name__} must be {cls.width} bytes, got {len(value)}")
        return super().__new__(cls, value)

    def is_zero(self) -> bool:
        return not any(self)

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hex()!r})"


class TraceID(_FixedBytes):
    """16-byte trace identifier; all zeroes is invalid."""

    width = 16


class SpanID(_FixedBytes):
    """8-byte span identifier; all zeroes means "no parent yet"."""

    width = 8


class FlagVersion(_FixedBytes):
    """Single byte used for both the version and the flags field."""

    width = 1

    def __int__(self) -> int:
        return self[0]


def _urandom(n: int) -> bytes:
    try:
        return os.urandom(n)
    except (OSError, NotImplementedError) as e:
        raise EntropyError("system random source unavailable", {"bytes": n}) from e


def new_trace_id() -> TraceID:
    """
    Return a time-ordered trace id.

    48-bit millisecond timestamp followed by 80 random bits (ULID layout).
    Ids made within the same millisecond keep increasing.
    """
    try:
        value = monotonic.new()
    except (OSError, NotImplementedError) as e:
        raise EntropyError("system random source unavailable", {"bytes": 10}) from e
    return TraceID(value.bytes)


def new_span_id() -> SpanID:
    return SpanID(_urandom(SpanID.width))


def new_version() -> FlagVersion:
    return FlagVersion(b"\x00")


def new_flag(value: int) -> FlagVersion:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"flag must be in 0..255, got {value}")
    return FlagVersion(bytes([value]))


class UlidIdGenerator(IdGenerator):
    """
    OpenTelemetry id generator handing out the same ids as this package.

    Install with ``TracerProvider(id_generator=UlidIdGenerator())`` so spans
    created by OTel tracers carry time-ordered trace ids.
    """

    def generate_span_id(self) -> int:
        span_id = 0
        while span_id == 0:
            span_id = int.from_bytes(new_span_id(), "big")
        return span_id

    def generate_trace_id(self) -> int:
        trace_id = 0
        while trace_id == 0:
            trace_id = int.from_bytes(new_trace_id(), "big")
        return trace_id

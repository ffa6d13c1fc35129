"""Traceparent propagation across header and metadata carriers."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Set

from opentelemetry.context import Context
from opentelemetry.propagators.textmap import (
    CarrierT,
    Getter,
    Setter,
    TextMapPropagator,
)
from opentelemetry.trace import NonRecordingSpan, get_current_span, set_span_in_context

from w3ctrace.context.context import from_context, new_context
from w3ctrace.errors import ParseError
from w3ctrace.tracer.trace import HEADER_NAME, Trace, is_valid, parse_header, parse_string
from w3ctrace.utils.helpers import get_header_values, set_header

logger = logging.getLogger(__name__)


class HeaderGetter(Getter):
    """Case-insensitive getter for dicts, Starlette headers and gRPC metadata."""

    def get(self, carrier: Any, key: str) -> Optional[List[str]]:
        return get_header_values(carrier, key)

    def keys(self, carrier: Any) -> List[str]:
        if carrier is None:
            return []
        if hasattr(carrier, "keys"):
            return [str(k) for k in carrier.keys()]
        return [str(item[0]) for item in carrier]


class HeaderSetter(Setter):
    """Setter replacing any differently-cased copy of the key."""

    def set(self, carrier: Any, key: str, value: str) -> None:
        set_header(carrier, key, value)


header_getter = HeaderGetter()
header_setter = HeaderSetter()


def _first_parsable(values: Optional[Iterable[str]]) -> Optional[Trace]:
    for value in values or ():
        if not value:
            continue
        try:
            return parse_string(value)
        except ParseError as e:
            logger.debug("ignoring malformed %s header: %s", HEADER_NAME, e)
    return None


def extract(headers: Any) -> Optional[Trace]:
    """
    Extract the trace from incoming headers or metadata.

    Malformed values are ignored: bad tracing metadata from a peer must never
    fail a request. Returns None when no usable header is present; use
    ``ensure()`` to get a valid trace either way.
    """
    return _first_parsable(get_header_values(headers, HEADER_NAME))


def must_extract(headers: Any) -> Optional[Trace]:
    """
    Strict variant of ``extract``.

    Returns None only when the header is absent.

    Raises:
        ParseError: the header is present but malformed
    """
    return parse_header(headers)


def inject(headers: Any, tr: Optional[Trace]) -> Any:
    """
    Write the traceparent header onto ``headers`` (iff ``tr`` is valid).

    Returns the same carrier for convenience.
    """
    if is_valid(tr):
        set_header(headers, HEADER_NAME, tr.serialize())
    return headers


class TraceparentPropagator(TextMapPropagator):
    """
    OpenTelemetry propagator for the traceparent header.

    Register with ``opentelemetry.propagate.set_global_textmap`` to let OTel
    instrumentations carry the same header this package understands.
    """

    def extract(
        self,
        carrier: CarrierT,
        context: Optional[Context] = None,
        getter: Getter = header_getter,
    ) -> Context:
        if context is None:
            context = Context()
        tr = _first_parsable(getter.get(carrier, HEADER_NAME))
        if not is_valid(tr):
            return context
        context = new_context(tr, context)
        span_context = tr.to_span_context(is_remote=True)
        if span_context.is_valid:
            context = set_span_in_context(NonRecordingSpan(span_context), context)
        return context

    def inject(
        self,
        carrier: CarrierT,
        context: Optional[Context] = None,
        setter: Setter = header_setter,
    ) -> None:
        tr = from_context(context)
        if tr is None:
            span_context = get_current_span(context).get_span_context()
            if span_context.is_valid:
                tr = Trace.from_span_context(span_context)
        if is_valid(tr):
            setter.set(carrier, HEADER_NAME, tr.serialize())

    @property
    def fields(self) -> Set[str]:
        return {HEADER_NAME}

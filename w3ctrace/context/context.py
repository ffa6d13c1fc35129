"""Per-call storage of the current trace - using OpenTelemetry context directly."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import Token
from typing import Iterator, Optional

from opentelemetry import context as context_api
from opentelemetry.context import Context

from w3ctrace.tracer.trace import Trace, is_valid

# create_key appends a uuid, so no other code can guess or reuse this key.
_TRACE_KEY = context_api.create_key("w3ctrace-trace")


def new_context(tr: Optional[Trace], context: Optional[Context] = None) -> Context:
    """
    Return a context carrying ``tr`` (iff it is valid).

    An invalid or absent trace leaves the context as it was.
    """
    if context is None:
        context = context_api.get_current()
    if not is_valid(tr):
        return context
    return context_api.set_value(_TRACE_KEY, tr, context)


def from_context(context: Optional[Context] = None) -> Optional[Trace]:
    """
    Return the trace stored in the context, or None when there is none.

    Use ``ensure()`` to get a usable trace either way.
    """
    tr = context_api.get_value(_TRACE_KEY, context)
    return tr if isinstance(tr, Trace) else None


def attach_trace(tr: Optional[Trace]) -> Token:
    """
    Make ``tr`` the current trace.

    Returns:
        Token needed to restore the previous state
    """
    return context_api.attach(new_context(tr))


def detach_trace(token: Token) -> None:
    """
    Restore the previous context using the provided token.

    Args:
        token: Token returned by attach_trace()
    """
    context_api.detach(token)


@contextmanager
def use_trace(tr: Optional[Trace]) -> Iterator[Optional[Trace]]:
    """Run the ``with`` body with ``tr`` as the current trace."""
    token = attach_trace(tr)
    try:
        yield tr if is_valid(tr) else from_context()
    finally:
        detach_trace(token)

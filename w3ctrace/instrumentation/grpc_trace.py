"""
gRPC helpers for receiving and sending the traceparent metadata entry.

https://github.com/grpc/grpc/blob/master/doc/PROTOCOL-HTTP2.md#requests
"""

from __future__ import annotations

import collections
import logging
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

import grpc

from w3ctrace.context import extract, from_context, inject, use_trace
from w3ctrace.errors import ParseError
from w3ctrace.instrumentation.http_server import trace_for_request
from w3ctrace.tracer.trace import HEADER_NAME, Trace, is_valid
from w3ctrace.utils.helpers import get_header_values

logger = logging.getLogger(__name__)

Metadata = Sequence[Tuple[str, str]]


def append_trace_to_metadata(metadata: Optional[Metadata], tr: Optional[Trace]) -> List[Tuple[str, str]]:
    """Outgoing client metadata with the trace added (iff it is valid)."""
    return inject(list(metadata or ()), tr)


def from_invocation_metadata(metadata: Optional[Metadata]) -> Optional[Trace]:
    """Read the trace sent by the client; malformed entries are skipped."""
    return extract(metadata or ())


def send_trace_header(context: grpc.ServicerContext, tr: Optional[Trace]) -> None:
    """
    Send the trace from the server back to the client as response header.

    grpcio accepts ``send_initial_metadata`` once per call, so handlers that
    send their own headers should go through ``TraceServerInterceptor``, which
    merges the trace into them instead.
    """
    if is_valid(tr):
        context.send_initial_metadata(((HEADER_NAME, tr.serialize()),))


class _TraceServicerContext:
    """
    Servicer context proxy that merges the trace into the response header.

    The header is sent at most once: with the handler's own initial metadata,
    or by ``flush`` when the handler never sent any.
    """

    def __init__(self, context: grpc.ServicerContext, tr: Trace) -> None:
        self._context = context
        self._trace = tr
        self._sent = False

    def __getattr__(self, name: str) -> Any:
        return getattr(self._context, name)

    def send_initial_metadata(self, initial_metadata: Metadata) -> None:
        self._sent = True
        if get_header_values(initial_metadata, HEADER_NAME):
            self._context.send_initial_metadata(initial_metadata)
            return
        self._context.send_initial_metadata(inject(list(initial_metadata or ()), self._trace))

    def flush(self) -> None:
        if not self._sent:
            self._sent = True
            send_trace_header(self._context, self._trace)


def _iterate_with_trace(
    tr: Trace, context: _TraceServicerContext, responses: Iterable[Any]
) -> Iterator[Any]:
    # Attach per step: a generator may resume in another context.
    iterator = iter(responses)
    while True:
        with use_trace(tr):
            try:
                item = next(iterator)
            except StopIteration:
                context.flush()
                return
        context.flush()
        yield item


class TraceServerInterceptor(grpc.ServerInterceptor):
    """
    Server interceptor establishing the trace of every incoming call.

    The trace is parsed from the invocation metadata (permissively unless
    ``strict``), ensured, added to the response header and made current while
    the handler runs.
    """

    def __init__(self, strict: Optional[bool] = None) -> None:
        self._strict = strict

    def _incoming(self, metadata: Optional[Metadata], context: grpc.ServicerContext) -> Trace:
        try:
            return trace_for_request(metadata or (), strict=self._strict)
        except ParseError as e:
            logger.debug("rejecting call with malformed %s: %s", HEADER_NAME, e)
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, f"invalid {HEADER_NAME}: {e}")
            raise

    def _wrap_unary_response(self, behavior: Callable, metadata: Optional[Metadata]) -> Callable:
        def wrapper(request_or_iterator, context):
            tr = self._incoming(metadata, context)
            traced_context = _TraceServicerContext(context, tr)
            with use_trace(tr):
                response = behavior(request_or_iterator, traced_context)
            traced_context.flush()
            return response

        return wrapper

    def _wrap_streaming_response(self, behavior: Callable, metadata: Optional[Metadata]) -> Callable:
        def wrapper(request_or_iterator, context):
            tr = self._incoming(metadata, context)
            traced_context = _TraceServicerContext(context, tr)
            with use_trace(tr):
                responses = behavior(request_or_iterator, traced_context)
            return _iterate_with_trace(tr, traced_context, responses)

        return wrapper

    def intercept_service(self, continuation, handler_call_details):
        handler = continuation(handler_call_details)
        if handler is None:
            return None
        metadata = handler_call_details.invocation_metadata
        kwargs = {
            "request_deserializer": handler.request_deserializer,
            "response_serializer": handler.response_serializer,
        }
        if handler.unary_unary:
            return grpc.unary_unary_rpc_method_handler(
                self._wrap_unary_response(handler.unary_unary, metadata), **kwargs
            )
        if handler.unary_stream:
            return grpc.unary_stream_rpc_method_handler(
                self._wrap_streaming_response(handler.unary_stream, metadata), **kwargs
            )
        if handler.stream_unary:
            return grpc.stream_unary_rpc_method_handler(
                self._wrap_unary_response(handler.stream_unary, metadata), **kwargs
            )
        if handler.stream_stream:
            return grpc.stream_stream_rpc_method_handler(
                self._wrap_streaming_response(handler.stream_stream, metadata), **kwargs
            )
        return handler


class _ClientCallDetails(
    collections.namedtuple(
        "_ClientCallDetails",
        ("method", "timeout", "metadata", "credentials", "wait_for_ready", "compression"),
    ),
    grpc.ClientCallDetails,
):
    pass


class TraceClientInterceptor(
    grpc.UnaryUnaryClientInterceptor,
    grpc.UnaryStreamClientInterceptor,
    grpc.StreamUnaryClientInterceptor,
    grpc.StreamStreamClientInterceptor,
):
    """Client interceptor adding the current trace to outgoing metadata."""

    def _with_trace(self, details: grpc.ClientCallDetails) -> grpc.ClientCallDetails:
        tr = from_context()
        if not is_valid(tr):
            return details
        return _ClientCallDetails(
            details.method,
            details.timeout,
            append_trace_to_metadata(details.metadata, tr),
            details.credentials,
            getattr(details, "wait_for_ready", None),
            getattr(details, "compression", None),
        )

    def intercept_unary_unary(self, continuation, client_call_details, request):
        return continuation(self._with_trace(client_call_details), request)

    def intercept_unary_stream(self, continuation, client_call_details, request):
        return continuation(self._with_trace(client_call_details), request)

    def intercept_stream_unary(self, continuation, client_call_details, request_iterator):
        return continuation(self._with_trace(client_call_details), request_iterator)

    def intercept_stream_stream(self, continuation, client_call_details, request_iterator):
        return continuation(self._with_trace(client_call_details), request_iterator)

"""Tests for gRPC metadata helpers and interceptors.

The interceptors are driven directly with fake call details and servicer
contexts, so no server or network is involved.
"""

import collections

import grpc
import pytest

from w3ctrace import Trace, TraceClientInterceptor, TraceServerInterceptor, from_context, parse_string, use_trace
from w3ctrace.instrumentation import append_trace_to_metadata, from_invocation_metadata, send_trace_header

FIXED = "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01"

HandlerCallDetails = collections.namedtuple("HandlerCallDetails", ("method", "invocation_metadata"))
ClientCallDetails = collections.namedtuple(
    "ClientCallDetails",
    ("method", "timeout", "metadata", "credentials", "wait_for_ready", "compression"),
)


class Aborted(Exception):
    pass


class FakeServicerContext:
    def __init__(self):
        self.initial_metadata = []
        self.sent = False
        self.aborted = None

    def send_initial_metadata(self, metadata):
        # grpcio allows initial metadata only once per call.
        if self.sent:
            raise ValueError("Initial metadata no longer allowed!")
        self.sent = True
        self.initial_metadata.extend(metadata)

    def abort(self, code, details):
        self.aborted = (code, details)
        raise Aborted(details)


def _intercept(handler, metadata, **kwargs):
    interceptor = TraceServerInterceptor(**kwargs)
    return interceptor.intercept_service(
        lambda details: handler,
        HandlerCallDetails("/svc/Method", tuple(metadata)),
    )


def _seen_trace(request, context):
    tr = from_context()
    return tr.serialize() if tr else ""


def _seen_traces(request, context):
    for _ in range(3):
        tr = from_context()
        yield tr.serialize() if tr else ""


class TestMetadataHelpers:
    def test_append(self):
        md = append_trace_to_metadata((("a", "b"),), parse_string(FIXED))
        assert md == [("a", "b"), ("traceparent", FIXED)]

    def test_append_invalid(self):
        assert append_trace_to_metadata(None, Trace()) == []

    def test_from_invocation_metadata(self):
        assert from_invocation_metadata((("traceparent", FIXED),)).serialize() == FIXED
        assert from_invocation_metadata((("traceparent", "junk"),)) is None
        assert from_invocation_metadata(None) is None

    def test_send_trace_header(self):
        context = FakeServicerContext()
        send_trace_header(context, Trace())
        assert context.initial_metadata == []
        send_trace_header(context, parse_string(FIXED))
        assert context.initial_metadata == [("traceparent", FIXED)]


class TestServerInterceptor:
    def test_unary_unary_keeps_incoming_trace(self):
        handler = _intercept(grpc.unary_unary_rpc_method_handler(_seen_trace), [("traceparent", FIXED)])
        context = FakeServicerContext()
        assert handler.unary_unary("req", context) == FIXED
        assert context.initial_metadata == [("traceparent", FIXED)]
        assert from_context() is None

    def test_unary_unary_mints_trace(self):
        handler = _intercept(grpc.unary_unary_rpc_method_handler(_seen_trace), [])
        context = FakeServicerContext()
        seen = handler.unary_unary("req", context)
        assert parse_string(seen).is_valid()
        assert context.initial_metadata == [("traceparent", seen)]

    def test_malformed_is_swallowed(self):
        handler = _intercept(grpc.unary_unary_rpc_method_handler(_seen_trace), [("traceparent", "bad")])
        context = FakeServicerContext()
        assert parse_string(handler.unary_unary("req", context)).is_valid()
        assert context.aborted is None

    def test_strict_aborts(self):
        handler = _intercept(
            grpc.unary_unary_rpc_method_handler(_seen_trace), [("traceparent", "bad")], strict=True
        )
        context = FakeServicerContext()
        with pytest.raises(Aborted):
            handler.unary_unary("req", context)
        assert context.aborted[0] == grpc.StatusCode.INVALID_ARGUMENT

    def test_unary_stream(self):
        handler = _intercept(grpc.unary_stream_rpc_method_handler(_seen_traces), [("traceparent", FIXED)])
        context = FakeServicerContext()
        responses = handler.unary_stream("req", context)
        assert list(responses) == [FIXED, FIXED, FIXED]
        assert context.initial_metadata == [("traceparent", FIXED)]
        assert from_context() is None

    def test_stream_unary(self):
        handler = _intercept(grpc.stream_unary_rpc_method_handler(_seen_trace), [("traceparent", FIXED)])
        assert handler.stream_unary(iter(["a", "b"]), FakeServicerContext()) == FIXED

    def test_stream_stream(self):
        handler = _intercept(grpc.stream_stream_rpc_method_handler(_seen_traces), [("traceparent", FIXED)])
        assert list(handler.stream_stream(iter([]), FakeServicerContext())) == [FIXED] * 3

    def test_handler_initial_metadata_gets_trace(self):
        def behavior(request, context):
            context.send_initial_metadata((("x-app", "1"),))
            return "ok"

        handler = _intercept(grpc.unary_unary_rpc_method_handler(behavior), [("traceparent", FIXED)])
        context = FakeServicerContext()
        assert handler.unary_unary("req", context) == "ok"
        assert context.initial_metadata == [("x-app", "1"), ("traceparent", FIXED)]

    def test_handler_own_traceparent_is_kept(self):
        def behavior(request, context):
            context.send_initial_metadata((("traceparent", "custom"),))
            return "ok"

        handler = _intercept(grpc.unary_unary_rpc_method_handler(behavior), [("traceparent", FIXED)])
        context = FakeServicerContext()
        handler.unary_unary("req", context)
        assert context.initial_metadata == [("traceparent", "custom")]

    def test_streaming_handler_initial_metadata_gets_trace(self):
        def behavior(request, context):
            context.send_initial_metadata((("x-app", "1"),))
            yield "a"
            yield "b"

        handler = _intercept(grpc.unary_stream_rpc_method_handler(behavior), [("traceparent", FIXED)])
        context = FakeServicerContext()
        assert list(handler.unary_stream("req", context)) == ["a", "b"]
        assert context.initial_metadata == [("x-app", "1"), ("traceparent", FIXED)]

    def test_streaming_setup_runs_with_trace(self):
        seen = []

        def behavior(request, context):
            seen.append(from_context())
            return iter(["a"])

        handler = _intercept(grpc.unary_stream_rpc_method_handler(behavior), [("traceparent", FIXED)])
        context = FakeServicerContext()
        assert list(handler.unary_stream("req", context)) == ["a"]
        assert seen == [parse_string(FIXED)]
        assert context.initial_metadata == [("traceparent", FIXED)]

    def test_empty_stream_still_sends_trace(self):
        handler = _intercept(grpc.unary_stream_rpc_method_handler(lambda r, c: iter([])), [("traceparent", FIXED)])
        context = FakeServicerContext()
        assert list(handler.unary_stream("req", context)) == []
        assert context.initial_metadata == [("traceparent", FIXED)]

    def test_unknown_method(self):
        assert _intercept(None, []) is None


class TestClientInterceptor:
    def _details(self, metadata=None):
        return ClientCallDetails("/svc/Method", None, metadata, None, None, None)

    def test_adds_current_trace(self):
        captured = {}

        def continuation(details, request):
            captured["metadata"] = details.metadata
            return "response"

        with use_trace(parse_string(FIXED)):
            result = TraceClientInterceptor().intercept_unary_unary(
                continuation, self._details([("a", "b")]), "req"
            )
        assert result == "response"
        assert captured["metadata"] == [("a", "b"), ("traceparent", FIXED)]

    def test_without_trace_details_unchanged(self):
        details = self._details()
        seen = []
        TraceClientInterceptor().intercept_stream_stream(lambda d, it: seen.append(d), details, iter([]))
        assert seen == [details]

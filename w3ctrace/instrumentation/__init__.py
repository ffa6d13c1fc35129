"""Boundary middleware: HTTP, gRPC, decorators and logging."""

from w3ctrace.instrumentation.decorator import traced
from w3ctrace.instrumentation.http_client import inject_headers as inject_http_headers
from w3ctrace.instrumentation.http_server import trace_for_request
from w3ctrace.instrumentation.fastapi import install_http_middleware
from w3ctrace.instrumentation.grpc_trace import (
    TraceClientInterceptor,
    TraceServerInterceptor,
    append_trace_to_metadata,
    from_invocation_metadata,
    send_trace_header,
)
from w3ctrace.instrumentation.log_filter import TraceContextFilter

__all__ = [
    "traced",
    "inject_http_headers",
    "trace_for_request",
    "install_http_middleware",
    "TraceClientInterceptor",
    "TraceServerInterceptor",
    "append_trace_to_metadata",
    "from_invocation_metadata",
    "send_trace_header",
    "TraceContextFilter",
]

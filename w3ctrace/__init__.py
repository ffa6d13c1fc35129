"""w3ctrace: receive, mint and send W3C traceparent headers.

Traceparent: Version-TraceID-ParentID-Flags
"""

from w3ctrace.errors import ConfigError, EntropyError, ParseError, W3CTraceError
from w3ctrace.tracer import (
    HEADER_NAME,
    FlagVersion,
    SpanID,
    Trace,
    TraceID,
    UlidIdGenerator,
    ensure,
    is_valid,
    new,
    new_flag,
    new_span_id,
    new_trace_id,
    new_version,
    parse_header,
    parse_string,
    serialize,
)
from w3ctrace.context import (
    TraceparentPropagator,
    attach_trace,
    detach_trace,
    extract,
    from_context,
    inject,
    must_extract,
    new_context,
    use_trace,
)
from w3ctrace.instrumentation import (
    TraceClientInterceptor,
    TraceContextFilter,
    TraceServerInterceptor,
    install_http_middleware,
    traced,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConfigError",
    "EntropyError",
    "ParseError",
    "W3CTraceError",
    "HEADER_NAME",
    "FlagVersion",
    "SpanID",
    "Trace",
    "TraceID",
    "UlidIdGenerator",
    "ensure",
    "is_valid",
    "new",
    "new_flag",
    "new_span_id",
    "new_trace_id",
    "new_version",
    "parse_header",
    "parse_string",
    "serialize",
    "TraceparentPropagator",
    "attach_trace",
    "detach_trace",
    "extract",
    "from_context",
    "inject",
    "must_extract",
    "new_context",
    "use_trace",
    "TraceClientInterceptor",
    "TraceContextFilter",
    "TraceServerInterceptor",
    "install_http_middleware",
    "traced",
]

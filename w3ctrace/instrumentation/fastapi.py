"""
FastAPI middleware helpers for carrying the trace through HTTP requests.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from w3ctrace import runtime_config
from w3ctrace.context import inject, use_trace
from w3ctrace.errors import ParseError
from w3ctrace.instrumentation.http_server import trace_for_request


def install_http_middleware(
    app: Any,
    *,
    strict: Optional[bool] = None,
    echo_response_header: Optional[bool] = None,
) -> None:
    """
    Attach an HTTP middleware that establishes the trace of each request.

    - Parses traceparent from the request headers and ensures a valid trace
    - Stores it on ``request.state.trace`` and makes it current for the handler
    - Optionally echoes traceparent on the response
    - In strict mode a malformed header is answered with 400
    """

    @app.middleware("http")
    async def trace_middleware(request, call_next: Callable[[Any], Awaitable[Any]]):  # type: ignore
        try:
            tr = trace_for_request(request.headers, strict=strict)
        except ParseError as e:
            # Lazy import keeps starlette optional for non-HTTP users.
            from starlette.responses import PlainTextResponse
            return PlainTextResponse(f"invalid traceparent: {e}", status_code=400)

        request.state.trace = tr
        with use_trace(tr):
            response = await call_next(request)

        echo = echo_response_header
        if echo is None:
            echo = runtime_config.get_echo_response_header()
        if echo:
            inject(response.headers, tr)
        return response

    return None

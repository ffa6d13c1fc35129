"""HTTP server helpers for establishing the trace of an incoming request."""

from __future__ import annotations

import logging
from typing import Any, Optional

from w3ctrace import runtime_config
from w3ctrace.context import extract, must_extract
from w3ctrace.tracer.trace import Trace, ensure

logger = logging.getLogger(__name__)


def trace_for_request(headers: Any, strict: Optional[bool] = None) -> Trace:
    """
    Parse traceparent from incoming headers and guarantee a valid trace.

    Permissive by default: a malformed header is treated as absent. With
    ``strict`` (or the ``strict_ingress`` setting) the ParseError propagates.
    """
    if strict is None:
        strict = runtime_config.get_strict_ingress()
    incoming = must_extract(headers) if strict else extract(headers)
    tr = ensure(incoming)
    if tr is not incoming:
        logger.debug("started trace %s", tr)
    return tr

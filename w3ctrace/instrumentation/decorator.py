"""@traced decorator for running functions under a guaranteed trace."""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable, Optional

from w3ctrace.context import from_context, use_trace
from w3ctrace.tracer.trace import ensure

logger = logging.getLogger(__name__)


def traced(func: Optional[Callable[..., Any]] = None, *, new_root: bool = False) -> Any:
    """
    Decorate a function so it always runs with a valid current trace.

    - Reuses the current trace when one is attached
    - Otherwise (or with ``new_root=True``) starts a fresh one
    - Supports sync and async functions

    Usable bare (``@traced``) or with arguments (``@traced(new_root=True)``).
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        def current():
            incoming = None if new_root else from_context()
            tr = ensure(incoming)
            if tr is not incoming:
                logger.debug("started trace %s for %s", tr, fn.__qualname__)
            return tr

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                with use_trace(current()):
                    return await fn(*args, **kwargs)

            return async_wrapper

        @functools.wraps(fn)
        def sync_wrapper(*args, **kwargs):
            with use_trace(current()):
                return fn(*args, **kwargs)

        return sync_wrapper

    if func is not None:
        return decorator(func)
    return decorator

"""Context utilities: per-call trace storage and header propagation."""

from w3ctrace.context.context import (
    attach_trace,
    detach_trace,
    from_context,
    new_context,
    use_trace,
)
from w3ctrace.context.propagators import (
    HeaderGetter,
    HeaderSetter,
    TraceparentPropagator,
    extract,
    header_getter,
    header_setter,
    inject,
    must_extract,
)

__all__ = [
    "attach_trace",
    "detach_trace",
    "from_context",
    "new_context",
    "use_trace",
    "HeaderGetter",
    "HeaderSetter",
    "TraceparentPropagator",
    "extract",
    "header_getter",
    "header_setter",
    "inject",
    "must_extract",
]

"""Tests for the @traced decorator and the logging filter."""

import asyncio
import logging

from w3ctrace import TraceContextFilter, ensure, from_context, parse_string, traced, use_trace

FIXED = "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01"


def test_traced_reuses_current_trace():
    @traced
    def work():
        return from_context()

    tr = parse_string(FIXED)
    with use_trace(tr):
        assert work() == tr


def test_traced_new_root():
    @traced(new_root=True)
    def work():
        return from_context()

    tr = parse_string(FIXED)
    with use_trace(tr):
        got = work()
    assert got.is_valid()
    assert got != tr


def test_traced_async():
    @traced
    async def work():
        await asyncio.sleep(0)
        return from_context()

    got = asyncio.run(work())
    assert got is not None and got.is_valid()
    assert from_context() is None


def test_traced_restores_context_on_error():
    @traced
    def boom():
        raise RuntimeError("x")

    try:
        boom()
    except RuntimeError:
        pass
    assert from_context() is None


def _record():
    return logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)


def test_log_filter_with_trace():
    tr = parse_string(FIXED)
    record = _record()
    with use_trace(tr):
        assert TraceContextFilter().filter(record)
    assert record.trace_id == "4bf92f3577b34da6a3ce929d0e0e4736"
    assert record.parent_id == "00f067aa0ba902b7"
    assert record.traceparent == FIXED


def test_log_filter_without_trace():
    record = _record()
    assert TraceContextFilter().filter(record)
    assert record.trace_id == ""
    assert record.traceparent == ""


def test_log_filter_in_formatter():
    record = _record()
    with use_trace(ensure(None)):
        TraceContextFilter().filter(record)
    line = logging.Formatter("%(trace_id)s %(message)s").format(record)
    assert line.endswith(" msg")
    assert len(line.split(" ")[0]) == 32

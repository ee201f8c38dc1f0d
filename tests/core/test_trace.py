"""
tests/core/test_trace.py - Trace Logger Tests

Verifies the grep-able CALL / RESULT / BLOCKED trace lines.
"""

import logging

from core.trace import TraceLogger
from core.types import ToolCall, ToolResult


def test_call_ids_increase(caplog):
    tracer = TraceLogger(session_id="sess1")
    with caplog.at_level(logging.INFO, logger="agent.trace"):
        first = tracer.log_tool_call(ToolCall("read_file", {"path": "a.md"}))
        second = tracer.log_tool_call(ToolCall("read_file", {"path": "b.md"}))

    assert (first, second) == (1, 2)
    assert "[session=sess1] [call=1] CALL Tool=read_file" in caplog.text
    assert '"path": "b.md"' in caplog.text


def test_result_line_includes_error_snippet(caplog):
    tracer = TraceLogger(session_id="sess1")
    with caplog.at_level(logging.INFO, logger="agent.trace"):
        tracer.log_tool_result(3, "read_file", ToolResult.error("File does not exist"), 1.25)

    assert "[call=3] RESULT error Tool=read_file elapsed=1.2ms" in caplog.text or \
        "[call=3] RESULT error Tool=read_file elapsed=1.3ms" in caplog.text
    assert 'error="File does not exist"' in caplog.text


def test_long_arguments_are_truncated(caplog):
    tracer = TraceLogger(session_id="sess1")
    with caplog.at_level(logging.INFO, logger="agent.trace"):
        tracer.log_tool_call(ToolCall("write_file", {"content": "x" * 1000}))

    assert "x" * 1000 not in caplog.text
    assert "..." in caplog.text


def test_blocked_is_a_warning(caplog):
    tracer = TraceLogger(session_id="sess1")
    with caplog.at_level(logging.INFO, logger="agent.trace"):
        tracer.log_blocked(1, "write_file", "Path traversal detected")

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert "BLOCKED Tool=write_file" in record.getMessage()

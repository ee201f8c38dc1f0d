"""
core/trace.py - Tool-Call Traceability

This module provides structured, grep-able logging for tool calls.
Every tool execution can be traced via session_id and a per-session call number.

Responsibilities:
- Centralized trace logging format
- Consistent log structure for grep/search
- Timing information for performance analysis

Usage:
    tracer = TraceLogger(session_id="sess_abc123")
    call_id = tracer.log_tool_call(tool_call)
    # ... execute tool ...
    tracer.log_tool_result(call_id, tool_call.tool, result, elapsed_ms=12.3)

Log Format:
    [session=X] [call=N] CALL Tool={name} Args={...}
    [session=X] [call=N] RESULT success Tool={name} elapsed={ms}ms
    [session=X] [call=N] BLOCKED Tool={name} reason="..."
"""

import json
import logging
from typing import Any, Dict

from core.types import ToolCall, ToolResult

logger = logging.getLogger("agent.trace")


class TraceLogger:
    """Centralized tool-call tracing for debuggability.

    All tool calls go through this logger for consistent, grep-able output.
    """

    def __init__(self, session_id: str):
        """Initialize tracer with session ID.

        Args:
            session_id: Unique identifier for this agent session
        """
        self.session_id = session_id
        self._call_count = 0

    def log_tool_call(self, tool_call: ToolCall) -> int:
        """Log when a tool call is initiated.

        Returns:
            Sequence number identifying this call in later trace lines
        """
        self._call_count += 1
        args_str = self._format_args(tool_call.parameters)

        logger.info(
            f"[session={self.session_id}] [call={self._call_count}] "
            f"CALL Tool={tool_call.tool} Args={args_str}"
        )
        return self._call_count

    def log_tool_result(
        self,
        call_id: int,
        tool_name: str,
        result: ToolResult,
        elapsed_ms: float,
    ) -> None:
        """Log when a tool call completes.

        Args:
            call_id: Number returned by log_tool_call
            tool_name: Name of the executed tool
            result: The tool result
            elapsed_ms: Time taken in milliseconds
        """
        status = "success" if result.success else "error"

        error_info = ""
        if not result.success and result.message:
            error_snippet = result.message[:100].replace('\n', ' ')
            error_info = f" error=\"{error_snippet}\""

        files_info = ""
        if result.modified_files:
            files_info = f" modified={len(result.modified_files)}"

        logger.info(
            f"[session={self.session_id}] [call={call_id}] "
            f"RESULT {status} Tool={tool_name} elapsed={elapsed_ms:.1f}ms{files_info}{error_info}"
        )

    def log_blocked(self, call_id: int, tool_name: str, reason: str) -> None:
        """Log a call rejected before execution."""
        snippet = reason[:100].replace('\n', ' ')
        logger.warning(
            f"[session={self.session_id}] [call={call_id}] "
            f"BLOCKED Tool={tool_name} reason=\"{snippet}\""
        )

    def _format_args(self, args: Dict[str, Any], max_len: int = 200) -> str:
        """Format arguments for logging, truncating if needed."""
        try:
            args_json = json.dumps(args)
        except (TypeError, ValueError):
            args_json = str(args)
        if len(args_json) > max_len:
            return args_json[:max_len] + "..."
        return args_json

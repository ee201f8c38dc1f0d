"""
flow/execs.py - Tool Dispatcher

This module routes tool calls to registered tools through the safety gate.
It handles the runtime aspects of calling tools.

Responsibilities:
- Look up tools by name
- Run the safety check before anything touches the filesystem
- Dry-run previews
- Timestamped backups before write/update
- Lightweight parameter validation against tool schemas
- Trace every call

Error tiers:
- Hard (raised): unknown tool, missing path parameter, backup failure
- Soft (ToolResult.success=False): safety rejections, tool failures

Critical: a soft failure is a normal result that goes back to the model.
A hard error means the caller integrated incorrectly or the disk misbehaved.
"""

import logging
import shutil
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from core.safety import MissingParameterError, SafetyError, SafetyManager
from core.trace import TraceLogger
from core.types import AgentConfig, MODIFYING_TOOLS, ToolCall, ToolInfo, ToolResult
from tool.bases import BaseTool
from tool.index import ToolRegistry, create_default_registry

logger = logging.getLogger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class ToolExecutionError(Exception):
    """Base class for hard dispatcher errors."""
    pass


class UnknownToolError(ToolExecutionError):
    """The requested tool is not registered."""
    pass


class BackupError(ToolExecutionError):
    """A pre-modification backup could not be written."""
    pass


class ToolValidationError(ToolExecutionError):
    """Parameters do not satisfy the tool's declared schema."""
    pass


def backup_path_for(path: Path, now: Optional[datetime] = None) -> Path:
    """Sibling path `<name>.backup_<UTC YYYYMMDD_HHMMSS>` for a file."""
    now = now or datetime.now(timezone.utc)
    return path.with_name(f"{path.name}.backup_{now.strftime(BACKUP_TIMESTAMP_FORMAT)}")


def unused_backup_path(path: Path, now: Optional[datetime] = None) -> Path:
    """Timestamped backup path that does not exist yet.

    Backups made within the same second get a `_1`, `_2`, ... suffix so an
    earlier backup is never overwritten.
    """
    base = backup_path_for(path, now)
    candidate = base
    counter = 1
    while candidate.exists():
        candidate = base.with_name(f"{base.name}_{counter}")
        counter += 1
    return candidate


def json_type_name(value: Any) -> str:
    """Name the JSON type of a decoded value."""
    # bool is a subclass of int, so it must be tested first
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    if value is None:
        return "null"
    return type(value).__name__


class ToolExecutor:
    """Dispatcher for tool calls.

    Owns the tool registry and shares the agent's SafetyManager, so paths
    allowed or forbidden at runtime apply to every subsequent call.
    """

    def __init__(
        self,
        config: AgentConfig,
        safety_manager: SafetyManager,
        registry: Optional[ToolRegistry] = None,
    ):
        """Initialize the executor.

        Args:
            config: Agent configuration (dry run, backups, working directory)
            safety_manager: Gate consulted before every call
            registry: Tools to dispatch to (defaults to the six built-ins)
        """
        self.config = config
        self.safety_manager = safety_manager
        self.registry = registry or create_default_registry(
            config.working_directory,
            path_filter=safety_manager.would_allow_read,
        )
        self.tracer = TraceLogger(session_id=uuid.uuid4().hex[:8])

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def available_tools(self) -> List[str]:
        return self.registry.list()

    def get_tool_info(self, name: str) -> Optional[ToolInfo]:
        tool = self.registry.get(name)
        return tool.to_tool_info() if tool else None

    def tool_infos(self) -> List[ToolInfo]:
        return self.registry.get_tool_infos()

    def _require_tool(self, name: str) -> BaseTool:
        tool = self.registry.get(name)
        if tool is None:
            raise UnknownToolError(f"Unknown tool: {name}")
        return tool

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, tool_call: ToolCall) -> ToolResult:
        """Execute a tool call.

        Args:
            tool_call: The call to dispatch

        Returns:
            ToolResult; safety rejections and tool failures are soft

        Raises:
            UnknownToolError: If no tool has that name
            MissingParameterError: If a file operation has no path
            BackupError: If the pre-write backup could not be made
        """
        tool = self._require_tool(tool_call.tool)
        call_id = self.tracer.log_tool_call(tool_call)

        try:
            self.safety_manager.check_tool_call(tool_call)
        except MissingParameterError:
            raise
        except SafetyError as e:
            self.tracer.log_blocked(call_id, tool.name, str(e))
            return ToolResult.error(f"Safety check failed: {e}")

        if self.config.dry_run_mode:
            return self.execute_dry_run(tool, tool_call)

        backup = None
        if tool_call.tool in MODIFYING_TOOLS:
            backup = self._create_backup_if_needed(tool_call)

        start = time.monotonic()
        result = await tool.call(tool_call)
        elapsed_ms = (time.monotonic() - start) * 1000
        self.tracer.log_tool_result(call_id, tool.name, result, elapsed_ms)

        if backup is not None and result.success and isinstance(result.data, dict):
            result.data["backup_created"] = str(backup)

        return result

    def execute_dry_run(self, tool: BaseTool, tool_call: ToolCall) -> ToolResult:
        """Describe what would run without touching the filesystem."""
        logger.info(f"Dry run: {tool_call.tool}")
        return ToolResult.ok(
            {
                "tool": tool_call.tool,
                "parameters": dict(tool_call.parameters),
                "description": tool.description,
                "dry_run": True,
                "note": "This is a preview - no actual changes were made",
            },
            f"DRY RUN: Would execute {tool_call.tool} with given parameters",
        )

    def _create_backup_if_needed(self, tool_call: ToolCall) -> Optional[Path]:
        """Copy an existing target file aside before it is modified.

        Raises:
            BackupError: If the copy fails
        """
        if not self.config.auto_backup:
            return None

        raw_path = tool_call.parameters.get("path")
        if not isinstance(raw_path, str):
            return None

        path = self.safety_manager.resolve(raw_path)
        if not path.is_file():
            return None

        backup = unused_backup_path(path)
        try:
            shutil.copy2(path, backup)
        except OSError as e:
            logger.error(f"Backup of {path} failed: {e}")
            raise BackupError(f"Failed to create backup: {e}") from e

        logger.info(f"Created backup {backup}")
        return backup

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_tool_call(self, tool_call: ToolCall) -> None:
        """Check required parameters and JSON types against the tool schema.

        Raises:
            UnknownToolError: If no tool has that name
            ToolValidationError: On the first missing or mistyped parameter
        """
        schema = self._require_tool(tool_call.tool).parameters
        properties = schema.get("properties")
        if not isinstance(properties, dict):
            return

        for name in schema.get("required") or []:
            if name not in tool_call.parameters:
                raise ToolValidationError(f"Missing required parameter: {name}")

        for name, value in tool_call.parameters.items():
            param_schema = properties.get(name)
            if not isinstance(param_schema, dict):
                continue
            expected = param_schema.get("type")
            if not isinstance(expected, str):
                continue
            actual = json_type_name(value)
            if expected != actual and not (expected == "integer" and actual == "number"):
                raise ToolValidationError(
                    f"Parameter '{name}' has type '{actual}' but expected '{expected}'"
                )

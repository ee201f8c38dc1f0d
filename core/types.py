"""
core/types.py - Tool Call, Result, and Configuration Types

This module defines the fundamental data types used throughout the agent system.
These are the contracts that all other modules depend on.

Core types:
- ToolName: The closed set of built-in tool names
- ToolCall: A parsed tool invocation with name and parameters
- ToolResult: The uniform result envelope returned by every tool
- ToolInfo: Static description of a tool (help text)
- Tool: Function-calling declaration sent to a model
- AgentConfig: Agent configuration (paths, limits, flags)
- CompletionStatus: Graded task-completion classification

Rules:
- This module has NO dependencies on other agent modules
- Tool calls are immutable once constructed
- Types use dataclasses
"""

import copy
import json
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional


class ToolCallParseError(ValueError):
    """Raised when a tool call payload cannot be converted to a ToolCall."""
    pass


class ToolName(str, Enum):
    """Names of the built-in tools."""
    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    UPDATE_FILE = "update_file"
    SEARCH_FILES = "search_files"
    LIST_DIRECTORY = "list_directory"
    FILE_INFO = "file_info"


# Tools that take a single file `path` and go through the full path policy
FILE_OPERATIONS: FrozenSet[str] = frozenset({
    ToolName.READ_FILE.value,
    ToolName.WRITE_FILE.value,
    ToolName.UPDATE_FILE.value,
    ToolName.FILE_INFO.value,
})

# Tools that change file contents on disk
MODIFYING_TOOLS: FrozenSet[str] = frozenset({
    ToolName.WRITE_FILE.value,
    ToolName.UPDATE_FILE.value,
})

# Tools that operate on a directory scope, mapped to their directory parameter
DIRECTORY_TOOLS: Dict[str, str] = {
    ToolName.SEARCH_FILES.value: "directory",
    ToolName.LIST_DIRECTORY.value: "path",
}


@dataclass(frozen=True)
class ToolCall:
    """A parsed tool invocation.

    Attributes:
        tool: Name of the tool to invoke
        parameters: Mapping of parameter name to JSON value
        thought: Optional thought process behind the call
        reasoning: Optional reasoning for the call
    """
    tool: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    thought: Optional[str] = None
    reasoning: Optional[str] = None

    def clone(self) -> "ToolCall":
        """Return a copy that shares no mutable state with this call."""
        return replace(self, parameters=copy.deepcopy(self.parameters))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "parameters": copy.deepcopy(self.parameters),
            "thought": self.thought,
            "reasoning": self.reasoning,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ToolCall":
        """Build a ToolCall from a decoded JSON object.

        The object must carry a string `tool` and an object `parameters`;
        `thought` and `reasoning` are optional strings.

        Raises:
            ToolCallParseError: If the object does not have the ToolCall shape
        """
        if not isinstance(data, dict):
            raise ToolCallParseError("Tool call must be a JSON object")

        tool = data.get("tool")
        if not isinstance(tool, str) or not tool:
            raise ToolCallParseError("Tool call is missing a 'tool' name")

        parameters = data.get("parameters")
        if not isinstance(parameters, dict):
            raise ToolCallParseError("Tool call 'parameters' must be an object")

        thought = data.get("thought")
        reasoning = data.get("reasoning")
        for key, value in (("thought", thought), ("reasoning", reasoning)):
            if value is not None and not isinstance(value, str):
                raise ToolCallParseError(f"Tool call '{key}' must be a string")

        return cls(
            tool=tool,
            parameters=copy.deepcopy(parameters),
            thought=thought,
            reasoning=reasoning,
        )

    @classmethod
    def from_json(cls, text: str) -> "ToolCall":
        """Parse a JSON-encoded tool call.

        Raises:
            ToolCallParseError: If the text is not valid JSON or has the wrong shape
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ToolCallParseError(f"Malformed tool call JSON: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_model_call(cls, name: str, arguments: Any) -> "ToolCall":
        """Convert a model's function-call request into a ToolCall.

        Models send arguments either as an object or as a JSON-encoded
        string of an object. `None` and blank strings mean no arguments.

        Raises:
            ToolCallParseError: If the arguments cannot be turned into an object
        """
        return cls(tool=name, parameters=_argument_map(arguments))


def _argument_map(arguments: Any) -> Dict[str, Any]:
    if arguments is None:
        return {}
    if isinstance(arguments, dict):
        return copy.deepcopy(arguments)
    if isinstance(arguments, str):
        if not arguments.strip():
            return {}
        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError as e:
            raise ToolCallParseError(f"Failed to parse tool arguments JSON string: {e}") from e
        return _argument_map(parsed)
    raise ToolCallParseError(
        f"Tool arguments must be an object; received {arguments!r}"
    )


@dataclass
class ToolResult:
    """The result of executing a tool.

    Attributes:
        success: Whether the tool executed successfully
        data: Tool-specific JSON payload, or the error string on failure
        message: Optional human-readable summary
        modified_files: Paths written by the tool, in order
    """
    success: bool
    data: Any = None
    message: Optional[str] = None
    modified_files: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, data: Any, message: Optional[str] = None) -> "ToolResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def ok_with_files(
        cls,
        data: Any,
        message: Optional[str],
        modified_files: List[str],
    ) -> "ToolResult":
        return cls(success=True, data=data, message=message, modified_files=list(modified_files))

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        """Soft failure: the error text is both the data and the message."""
        return cls(success=False, data=message, message=message)

    def to_payload(self, tool_name: str) -> Dict[str, Any]:
        """Build the tool-message payload fed back to a model."""
        return {
            "tool": tool_name,
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "modified_files": [str(p) for p in self.modified_files],
        }


@dataclass(frozen=True)
class ToolInfo:
    """Static description of a tool.

    Attributes:
        name: Unique identifier for the tool
        description: What the tool does
        parameters: JSON schema (type "object" with properties/required)
    """
    name: str
    description: str
    parameters: Dict[str, Any]

    def format_description(self) -> str:
        """Human-readable catalog entry with one line per parameter."""
        desc = f"**{self.name}**: {self.description}"

        properties = self.parameters.get("properties")
        if isinstance(properties, dict):
            desc += "\n\nParameters:"
            required = self.parameters.get("required") or []
            for param_name, param_info in properties.items():
                param_type = param_info.get("type", "unknown")
                param_desc = param_info.get("description", "No description")
                marker = " *required*" if param_name in required else ""
                desc += f"\n  - {param_name} ({param_type}){marker}: {param_desc}"

        return desc


@dataclass(frozen=True)
class Tool:
    """Definition of a tool the model can call.

    Attributes:
        name: Unique identifier for the tool
        description: What the tool does (shown to the model)
        parameters: JSON schema describing the tool's parameters
    """
    name: str
    description: str
    parameters: Dict[str, Any]

    def to_function_schema(self) -> Dict[str, Any]:
        """OpenAI-style function declaration."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


DEFAULT_ALLOWED_EXTENSIONS = (
    "txt", "md", "rs", "toml", "json", "yaml", "yml", "js", "ts", "py",
    "html", "css", "xml", "csv", "log",
)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


@dataclass
class AgentConfig:
    """Agent configuration.

    Attributes:
        enabled: Whether agent mode is enabled
        allowed_extensions: File extensions tools may touch (lowercase)
        max_file_size: Maximum content size in bytes for writes
        working_directory: Root directory for operations
        auto_backup: Copy files aside before modifying them
        dry_run_mode: Preview tool calls without executing them
    """
    enabled: bool = False
    allowed_extensions: FrozenSet[str] = field(
        default_factory=lambda: frozenset(DEFAULT_ALLOWED_EXTENSIONS)
    )
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    working_directory: Path = field(default_factory=lambda: Path(os.getcwd()))
    auto_backup: bool = True
    dry_run_mode: bool = False

    def __post_init__(self):
        self.allowed_extensions = frozenset(
            ext.lower().lstrip(".") for ext in self.allowed_extensions
        )
        self.working_directory = Path(self.working_directory)

    def with_changes(self, **changes: Any) -> "AgentConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


class CompletionStatus(str, Enum):
    """Task completion classification, ordered by confidence."""
    IN_PROGRESS = "in_progress"
    POSSIBLY_COMPLETE = "possibly_complete"
    LIKELY_COMPLETE = "likely_complete"
    COMPLETE = "complete"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    @property
    def description(self) -> str:
        return _STATUS_DESCRIPTIONS[self]

    @property
    def is_complete(self) -> bool:
        return self in (CompletionStatus.COMPLETE, CompletionStatus.LIKELY_COMPLETE)

    # str already defines the rich comparisons, so all four are overridden
    def __lt__(self, other):
        if not isinstance(other, CompletionStatus):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, CompletionStatus):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, CompletionStatus):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, CompletionStatus):
            return NotImplemented
        return self.rank >= other.rank


_STATUS_ORDER = [
    CompletionStatus.IN_PROGRESS,
    CompletionStatus.POSSIBLY_COMPLETE,
    CompletionStatus.LIKELY_COMPLETE,
    CompletionStatus.COMPLETE,
]

_STATUS_DESCRIPTIONS = {
    CompletionStatus.IN_PROGRESS: "Task is still in progress",
    CompletionStatus.POSSIBLY_COMPLETE: "Task might be complete",
    CompletionStatus.LIKELY_COMPLETE: "Task is likely complete",
    CompletionStatus.COMPLETE: "Task appears to be complete",
}


@dataclass(frozen=True)
class AgentStatus:
    """Snapshot of agent state for display."""
    enabled: bool
    tools_executed: int
    working_directory: Path
    dry_run_mode: bool
    available_tools: List[str]

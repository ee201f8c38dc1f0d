"""
tool/bases.py - Tool Interface

This module defines the abstract interface for tools.
Tools are actions the agent can take on the filesystem.

Responsibilities:
- Define standard tool interface
- Parameter validation (jsonschema)
- Shared helpers for path resolution, globbing and text detection

Rules:
- Tools do NOT reason or make decisions
- Tools only execute and return data
- Expected failures are returned as ToolResult(success=False), never raised
- Tools resolve relative paths against the agent working directory
"""

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jsonschema import validate, ValidationError

from core.types import Tool, ToolCall, ToolInfo, ToolResult


class ToolParameterError(ValueError):
    """Raised by a tool when a parameter it needs is missing or invalid."""
    pass


TEXT_EXTENSIONS = frozenset({
    "txt", "md", "rs", "toml", "json", "yaml", "yml", "js", "ts", "py",
    "html", "css", "xml", "csv", "log", "cfg", "conf", "ini", "sh",
    "bash", "zsh", "fish", "ps1", "bat", "cmd", "c", "cpp", "h", "hpp",
    "java", "kt", "swift", "go", "rb", "php", "pl", "r", "sql", "dockerfile",
})


class BaseTool(ABC):
    """Abstract base class for tools.

    Each tool must implement:
    - name: Unique identifier
    - description: What the tool does
    - parameters: JSON schema for parameters
    - execute: The actual tool logic
    """

    def __init__(self, working_directory: Optional[Union[str, Path]] = None):
        """Initialize with the directory relative paths are resolved against.

        Args:
            working_directory: Base directory (defaults to the process cwd)
        """
        self.working_directory = Path(working_directory) if working_directory else Path.cwd()

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what the tool does."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> Dict[str, Any]:
        """JSON schema describing tool parameters."""
        pass

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        """Execute the tool with given arguments.

        Args:
            arguments: Tool arguments (validated against schema)

        Returns:
            ToolResult with data or error

        Raises:
            ToolParameterError: If a parameter the operation needs is missing
        """
        pass

    def to_tool_info(self) -> ToolInfo:
        return ToolInfo(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    def to_tool_definition(self) -> Tool:
        """Convert this tool to a Tool definition.

        Returns:
            Tool object that can be sent to the model
        """
        return Tool(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    async def call(self, tool_call: ToolCall) -> ToolResult:
        """Call the tool with a ToolCall object.

        This method validates arguments against the tool's schema before execution.
        This catches hallucinations and type errors early with clear error messages.

        Args:
            tool_call: Tool call from the model

        Returns:
            ToolResult with data or error (never raises)
        """
        try:
            try:
                validate(instance=tool_call.parameters, schema=self.parameters)
            except ValidationError as ve:
                return ToolResult.error(f"Invalid arguments for {self.name}: {ve.message}")

            return await self.execute(tool_call.parameters)
        except Exception as e:
            return ToolResult.error(f"Tool execution failed: {e}")

    def resolve_path(self, path_str: str) -> Path:
        """Resolve a user-supplied path against the working directory."""
        path = Path(path_str)
        if not path.is_absolute():
            path = self.working_directory / path
        return path


def create_json_schema(
    properties: Dict[str, Dict[str, Any]],
    required: Optional[list] = None,
) -> Dict[str, Any]:
    """Helper to create JSON schema for tool parameters.

    Args:
        properties: Parameter definitions
        required: List of required parameter names

    Returns:
        JSON schema object
    """
    schema = {
        "type": "object",
        "properties": properties,
    }

    if required:
        schema["required"] = required

    return schema


def require_str(arguments: Dict[str, Any], key: str, context: str = "") -> str:
    """Fetch a mandatory string argument.

    Raises:
        ToolParameterError: If the argument is absent or not a string
    """
    value = arguments.get(key)
    if not isinstance(value, str):
        suffix = f" for {context}" if context else ""
        raise ToolParameterError(f"Missing or invalid '{key}' parameter{suffix}")
    return value


def is_text_file(path: Union[str, Path]) -> bool:
    """Guess whether a file is text from its extension."""
    suffix = Path(path).suffix
    return bool(suffix) and suffix[1:].lower() in TEXT_EXTENSIONS


def glob_to_regex(pattern: str) -> str:
    """Translate a simple filename glob (`*`, `?`) into an anchored regex."""
    translated = "".join(
        ".*" if ch == "*" else "." if ch == "?" else re.escape(ch)
        for ch in pattern
    )
    return f"^{translated}$"


def glob_match(pattern: str, name: str) -> bool:
    return re.match(glob_to_regex(pattern), name) is not None


def unix_seconds(timestamp: Optional[float]) -> Optional[int]:
    """Whole seconds since the epoch, or None if unavailable or pre-epoch."""
    if timestamp is None or timestamp < 0:
        return None
    return int(timestamp)

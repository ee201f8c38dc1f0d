"""
tool/index.py - Tool Registry

This module implements the tool registry for managing available tools.
The registry is the central place where all tools are registered and discovered.

Responsibilities:
- Register tools
- Look up tools by name
- Describe registered tools (help text and function declarations)

Rules:
- Tools must have unique names
- Registry is the single source of truth
- Registration happens once at construction; tools are never removed
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from core.types import Tool, ToolInfo
from .bases import BaseTool


class ToolRegistry:
    """Registry for managing tools.

    The registry maintains a collection of all available tools
    and provides methods for registration and lookup.
    """

    def __init__(self):
        self._tools: Dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        """Register a tool.

        Args:
            tool: Tool instance to register

        Raises:
            ValueError: If tool with same name already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")

        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[BaseTool]:
        """Get a tool by name.

        Args:
            name: Tool name

        Returns:
            Tool instance or None if not found
        """
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def list(self) -> List[str]:
        """List all registered tool names in registration order."""
        return list(self._tools.keys())

    def get_tools(self) -> List[BaseTool]:
        return list(self._tools.values())

    def get_tool_infos(self) -> List[ToolInfo]:
        """Get help-text descriptions for all registered tools."""
        return [tool.to_tool_info() for tool in self._tools.values()]

    def get_tool_definitions(self) -> List[Tool]:
        """Get tool definitions for all registered tools.

        Returns:
            List of Tool objects suitable for sending to model
        """
        return [tool.to_tool_definition() for tool in self._tools.values()]

    @property
    def count(self) -> int:
        """Get number of registered tools."""
        return len(self._tools)


def create_default_registry(
    working_directory: Optional[Union[str, Path]] = None,
    path_filter: Optional[Callable[[Path], bool]] = None,
) -> ToolRegistry:
    """Create a registry with the six built-in file tools.

    Args:
        working_directory: Directory the tools resolve relative paths against
        path_filter: Per-file predicate for tools that walk directories

    Returns:
        ToolRegistry with the built-in tools registered
    """
    from .files import FileInfo, ListDirectory, ReadFile, UpdateFile, WriteFile
    from .search import SearchFiles

    registry = ToolRegistry()

    registry.register(ReadFile(working_directory))
    registry.register(WriteFile(working_directory))
    registry.register(UpdateFile(working_directory))
    registry.register(SearchFiles(working_directory, path_filter=path_filter))
    registry.register(ListDirectory(working_directory))
    registry.register(FileInfo(working_directory))

    return registry

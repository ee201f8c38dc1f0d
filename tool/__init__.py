"""Tool module - File system tools the agent can execute."""

from .bases import BaseTool, ToolParameterError, create_json_schema
from .files import FileInfo, ListDirectory, ReadFile, UpdateFile, WriteFile
from .index import ToolRegistry, create_default_registry
from .search import SearchFiles

__all__ = [
    "BaseTool",
    "ToolParameterError",
    "create_json_schema",
    "ReadFile",
    "WriteFile",
    "UpdateFile",
    "SearchFiles",
    "ListDirectory",
    "FileInfo",
    "ToolRegistry",
    "create_default_registry",
]

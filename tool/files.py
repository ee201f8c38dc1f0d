"""
tool/files.py - File System Tools

This module implements tools for file system operations:
- read_file: Read text file contents
- write_file: Create or overwrite a file
- update_file: Targeted edits (replace, append, prepend, insert_at_line)
- list_directory: List directory entries, optionally recursive
- file_info: Metadata about a file or directory

Responsibilities:
- File system access on paths already cleared by the safety manager
- Uniform ToolResult payloads
- Error handling (soft failures for expected conditions)

Rules:
- Never delete files
- Relative paths resolve against the working directory
- Whole-file rewrites happen in a single write call
"""

import logging
import os
import stat
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.types import ToolResult
from .bases import (
    BaseTool,
    ToolParameterError,
    create_json_schema,
    is_text_file,
    require_str,
    unix_seconds,
)

logger = logging.getLogger(__name__)

UPDATE_OPERATIONS = ("replace", "append", "prepend", "insert_at_line")


def _read_text(path: Path) -> str:
    # newline="" keeps \r\n intact so sizes and rewrites match the bytes on disk
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def split_lines(text: str) -> List[str]:
    """Split on \n, dropping a trailing \r per line and one final empty line."""
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class ReadFile(BaseTool):
    """Read the contents of a text file."""

    @property
    def name(self) -> str:
        return "read_file"

    @property
    def description(self) -> str:
        return "Read the contents of a text file"

    @property
    def parameters(self) -> Dict[str, Any]:
        return create_json_schema(
            properties={
                "path": {
                    "type": "string",
                    "description": "Path to the file to read",
                },
            },
            required=["path"],
        )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        """Read file contents as UTF-8 text."""
        path = self.resolve_path(require_str(arguments, "path"))

        if not path.exists():
            return ToolResult.error(f"File does not exist: {path}")

        if not path.is_file():
            return ToolResult.error(f"Path is not a file: {path}")

        try:
            content = _read_text(path)
        except UnicodeDecodeError:
            return ToolResult.error(f"Failed to read file: {path} is not valid UTF-8 text")
        except OSError as e:
            return ToolResult.error(f"Failed to read file: {e}")

        size = _byte_len(content)
        return ToolResult.ok(
            {
                "path": str(path),
                "content": content,
                "size": size,
            },
            f"Successfully read {size} bytes from {path}",
        )


class WriteFile(BaseTool):
    """Write content to a file, creating parent directories."""

    @property
    def name(self) -> str:
        return "write_file"

    @property
    def description(self) -> str:
        return "Write content to a file (creates or overwrites)"

    @property
    def parameters(self) -> Dict[str, Any]:
        return create_json_schema(
            properties={
                "path": {
                    "type": "string",
                    "description": "Path to the file to write",
                },
                "content": {
                    "type": "string",
                    "description": "Content to write to the file",
                },
            },
            required=["path", "content"],
        )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        """Write content to file."""
        path = self.resolve_path(require_str(arguments, "path"))
        content = require_str(arguments, "content")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ToolResult.error(f"Failed to create directories: {e}")

        try:
            _write_text(path, content)
        except OSError as e:
            return ToolResult.error(f"Failed to write file: {e}")

        size = _byte_len(content)
        logger.debug(f"Wrote {size} bytes to {path}")
        return ToolResult.ok_with_files(
            {"path": str(path), "size": size},
            f"Successfully wrote {size} bytes to {path}",
            [str(path)],
        )


class UpdateFile(BaseTool):
    """Apply a targeted edit to an existing file.

    Operations:
    - replace: literal replace-all of `search` with `replacement` (default "")
    - append: original + "\\n" + replacement
    - prepend: replacement + "\\n" + original
    - insert_at_line: insert `replacement` before 1-based `line_number`
    """

    @property
    def name(self) -> str:
        return "update_file"

    @property
    def description(self) -> str:
        return "Update a file by replacing specific content or appending to it"

    @property
    def parameters(self) -> Dict[str, Any]:
        return create_json_schema(
            properties={
                "path": {
                    "type": "string",
                    "description": "Path to the file to update",
                },
                "operation": {
                    "type": "string",
                    "enum": list(UPDATE_OPERATIONS),
                    "description": "Type of update operation",
                },
                "search": {
                    "type": "string",
                    "description": "Text to search for (required for replace operation)",
                },
                "replacement": {
                    "type": "string",
                    "description": "Replacement text (for replace operation) or content to add",
                },
                "line_number": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Line number for insert_at_line operation (1-based)",
                },
            },
            required=["path", "operation"],
        )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        """Rewrite the file with the requested edit applied."""
        path = self.resolve_path(require_str(arguments, "path"))
        operation = require_str(arguments, "operation")

        if not path.exists():
            return ToolResult.error(f"File does not exist: {path}")

        if not path.is_file():
            return ToolResult.error(f"Path is not a file: {path}")

        try:
            original = _read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            return ToolResult.error(f"Failed to read file: {e}")

        if operation == "replace":
            search = require_str(arguments, "search", "replace operation")
            replacement = arguments.get("replacement") or ""
            updated = original.replace(search, replacement)

        elif operation == "append":
            addition = require_str(arguments, "replacement", "append operation")
            updated = f"{original}\n{addition}"

        elif operation == "prepend":
            addition = require_str(arguments, "replacement", "prepend operation")
            updated = f"{addition}\n{original}"

        elif operation == "insert_at_line":
            line_number = arguments.get("line_number")
            if isinstance(line_number, bool) or not isinstance(line_number, (int, float)) \
                    or int(line_number) != line_number or line_number < 1:
                raise ToolParameterError("Missing or invalid 'line_number' parameter")
            addition = require_str(arguments, "replacement", "insert_at_line operation")

            lines = split_lines(original)
            index = int(line_number) - 1
            if index > len(lines):
                return ToolResult.error(f"Line number {int(line_number)} is out of range")
            lines.insert(index, addition)
            updated = "\n".join(lines)

        else:
            return ToolResult.error(f"Unknown operation: {operation}")

        try:
            _write_text(path, updated)
        except OSError as e:
            return ToolResult.error(f"Failed to update file: {e}")

        return ToolResult.ok_with_files(
            {
                "path": str(path),
                "operation": operation,
                "original_size": _byte_len(original),
                "new_size": _byte_len(updated),
            },
            f"Successfully updated {path} using {operation} operation",
            [str(path)],
        )


class ListDirectory(BaseTool):
    """List files and directories in a given path."""

    @property
    def name(self) -> str:
        return "list_directory"

    @property
    def description(self) -> str:
        return "List files and directories in a given path"

    @property
    def parameters(self) -> Dict[str, Any]:
        return create_json_schema(
            properties={
                "path": {
                    "type": "string",
                    "description": "Directory path to list (default: current directory)",
                },
                "recursive": {
                    "type": "boolean",
                    "description": "Whether to list recursively (default: false)",
                },
                "show_hidden": {
                    "type": "boolean",
                    "description": "Whether to show hidden files (default: false)",
                },
            },
        )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        """List directory entries."""
        path = self.resolve_path(arguments.get("path") or ".")
        recursive = bool(arguments.get("recursive", False))
        show_hidden = bool(arguments.get("show_hidden", False))

        if not path.exists():
            return ToolResult.error(f"Path does not exist: {path}")

        if not path.is_dir():
            return ToolResult.error(f"Path is not a directory: {path}")

        entries: List[Dict[str, Any]] = []

        if recursive:
            for root, dirs, files in os.walk(path, onerror=self._log_walk_error):
                if not show_hidden:
                    dirs[:] = [d for d in dirs if not d.startswith(".")]
                dirs.sort()
                for name in sorted(dirs + files):
                    if not show_hidden and name.startswith("."):
                        continue
                    entries.append(self._entry(Path(root) / name))
        else:
            try:
                children = sorted(path.iterdir())
            except OSError as e:
                return ToolResult.error(f"Failed to read directory: {e}")
            for child in children:
                if not show_hidden and child.name.startswith("."):
                    continue
                entries.append(self._entry(child))

        entries.sort(key=lambda e: e["path"])

        return ToolResult.ok(
            {
                "path": str(path),
                "recursive": recursive,
                "entry_count": len(entries),
                "entries": entries,
            },
            f"Listed {len(entries)} entries in {path}",
        )

    @staticmethod
    def _entry(item: Path) -> Dict[str, Any]:
        try:
            info = item.stat()
        except OSError:
            info = None

        return {
            "path": str(item),
            "name": item.name,
            "type": "directory" if item.is_dir() else "file",
            "size": info.st_size if info else 0,
            "modified": unix_seconds(info.st_mtime) if info else None,
        }

    @staticmethod
    def _log_walk_error(error: OSError) -> None:
        logger.debug(f"Skipping unreadable directory during listing: {error}")


class FileInfo(BaseTool):
    """Report metadata about a file or directory."""

    @property
    def name(self) -> str:
        return "file_info"

    @property
    def description(self) -> str:
        return "Get detailed information about a file or directory"

    @property
    def parameters(self) -> Dict[str, Any]:
        return create_json_schema(
            properties={
                "path": {
                    "type": "string",
                    "description": "Path to the file or directory",
                },
            },
            required=["path"],
        )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        """Collect metadata for the path."""
        path = self.resolve_path(require_str(arguments, "path"))

        if not path.exists():
            return ToolResult.error(f"Path does not exist: {path}")

        try:
            info = path.stat()
        except OSError as e:
            return ToolResult.error(f"Failed to get metadata: {e}")

        if stat.S_ISDIR(info.st_mode):
            file_type = "directory"
        elif stat.S_ISREG(info.st_mode):
            file_type = "file"
        else:
            file_type = "other"

        data: Dict[str, Any] = {
            "path": str(path),
            "name": path.name,
            "type": file_type,
            "size": info.st_size,
            "readonly": not info.st_mode & stat.S_IWUSR,
        }

        for key, value in (
            ("created", _created_time(info)),
            ("modified", info.st_mtime),
            ("accessed", info.st_atime),
        ):
            seconds = unix_seconds(value)
            if seconds is not None:
                data[key] = seconds

        if file_type == "file":
            if path.suffix:
                data["extension"] = path.suffix[1:]

            text = is_text_file(path)
            data["is_text"] = text

            if text:
                try:
                    data["line_count"] = len(split_lines(_read_text(path)))
                except (OSError, UnicodeDecodeError):
                    logger.debug(f"Could not decode {path} for line count")

        return ToolResult.ok(data, f"Retrieved information for {path}")


def _created_time(info: os.stat_result) -> Optional[float]:
    # st_birthtime exists on macOS/BSD (and Windows on 3.12+); elsewhere the
    # creation time is unknown
    return getattr(info, "st_birthtime", None)

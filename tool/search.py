"""
tool/search.py - Text Search Tool

Recursive regex search across the text files of a directory tree.

Rules:
- Only files with a known text extension are scanned
- Invalid regexes fall back to a literal search
- Scanning stops as soon as max_results matches are collected
- Files and directories rejected by the path filter are never opened or descended
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from core.types import ToolResult
from .bases import BaseTool, create_json_schema, glob_match, is_text_file, require_str
from .files import split_lines

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 100


def compile_search_pattern(pattern: str, case_sensitive: bool) -> "re.Pattern[str]":
    """Compile a user pattern, treating it as literal text if it is not a valid regex."""
    prefix = "" if case_sensitive else "(?i)"
    try:
        return re.compile(prefix + pattern)
    except re.error:
        logger.debug(f"Pattern {pattern!r} is not a valid regex, searching literally")
        return re.compile(prefix + re.escape(pattern))


class SearchFiles(BaseTool):
    """Search for text patterns across files in a directory.

    The safety gate only sees the search root. `path_filter` is consulted for
    every file and directory the walk reaches, so a search never reads what
    read_file would refuse.
    """

    def __init__(
        self,
        working_directory: Optional[Union[str, Path]] = None,
        path_filter: Optional[Callable[[Path], bool]] = None,
    ):
        super().__init__(working_directory)
        self.path_filter = path_filter

    def _is_permitted(self, path: Path) -> bool:
        if self.path_filter is None or self.path_filter(path):
            return True
        logger.debug(f"Search skipped restricted path {path}")
        return False

    @property
    def name(self) -> str:
        return "search_files"

    @property
    def description(self) -> str:
        return "Search for text patterns across files in a directory"

    @property
    def parameters(self) -> Dict[str, Any]:
        return create_json_schema(
            properties={
                "pattern": {
                    "type": "string",
                    "description": "Text pattern or regex to search for",
                },
                "directory": {
                    "type": "string",
                    "description": "Directory to search in (default: current directory)",
                },
                "file_pattern": {
                    "type": "string",
                    "description": "File name pattern to filter (e.g., '*.rs', '*.txt')",
                },
                "case_sensitive": {
                    "type": "boolean",
                    "description": "Whether the search should be case sensitive (default: false)",
                },
                "max_results": {
                    "type": "integer",
                    "minimum": 0,
                    "description": "Maximum number of results to return (default: 100)",
                },
            },
            required=["pattern"],
        )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        """Walk the directory and collect matching lines."""
        pattern = require_str(arguments, "pattern")
        directory = arguments.get("directory") or "."
        file_pattern = arguments.get("file_pattern")
        case_sensitive = bool(arguments.get("case_sensitive", False))
        max_results = int(arguments.get("max_results", DEFAULT_MAX_RESULTS))

        regex = compile_search_pattern(pattern, case_sensitive)
        root = self.resolve_path(directory)

        results: List[Dict[str, Any]] = []
        files_searched = 0

        for path in self._walk_files(root):
            if len(results) >= max_results:
                break

            if file_pattern and not glob_match(file_pattern, path.name):
                continue

            if not is_text_file(path):
                continue

            files_searched += 1

            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Skipping unreadable file {path}: {e}")
                continue

            for line_num, line in enumerate(split_lines(content), start=1):
                if len(results) >= max_results:
                    break
                if not regex.search(line):
                    continue
                results.append({
                    "file": str(path),
                    "line": line_num,
                    "content": line,
                    "matches": [
                        {"start": m.start(), "end": m.end(), "text": m.group(0)}
                        for m in regex.finditer(line)
                    ],
                })

        return ToolResult.ok(
            {
                "pattern": pattern,
                "directory": directory,
                "files_searched": files_searched,
                "matches_found": len(results),
                "results": results,
            },
            f"Found {len(results)} matches in {files_searched} files",
        )

    def _walk_files(self, root: Path) -> Iterator[Path]:
        """Yield permitted regular files under root in a stable order, skipping walk errors."""
        if root.is_file():
            if self._is_permitted(root):
                yield root
            return

        for current, dirs, files in os.walk(root):
            dirs[:] = sorted(d for d in dirs if self._is_permitted(Path(current) / d))
            for name in sorted(files):
                path = Path(current) / name
                if path.is_file() and self._is_permitted(path):
                    yield path

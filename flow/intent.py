"""
flow/intent.py - Tool Call Extraction

This module turns chat text into tool calls.

Two strategies, applied in order:
1. The first line that is a JSON object of ToolCall shape
2. Keyword heuristics ("read" + "file", "search"/"find", "list" + "directory")

Rules:
- Best effort only; structured JSON tool calls are the reliable path
- Never raises on malformed input, it simply finds nothing
- Keywords are matched case-insensitively; extracted paths and
  patterns keep the user's original casing
"""

import logging
import re
from typing import List, Optional

from core.types import ToolCall, ToolCallParseError

logger = logging.getLogger(__name__)

QUOTES = "\"'"
FOR_CLAUSE = re.compile(r" for ", re.IGNORECASE)


def parse_tool_calls(message: str) -> List[ToolCall]:
    """Extract every tool call the message appears to request."""
    tool_calls: List[ToolCall] = []

    structured = parse_json_tool_call(message)
    if structured is not None:
        tool_calls.append(structured)

    tool_calls.extend(parse_natural_language(message))
    return tool_calls


def parse_json_tool_call(message: str) -> Optional[ToolCall]:
    """Return the first line that decodes as a ToolCall object."""
    for line in message.splitlines():
        line = line.strip()
        if not (line.startswith("{") and line.endswith("}")):
            continue
        try:
            return ToolCall.from_json(line)
        except ToolCallParseError as e:
            logger.debug(f"Ignoring JSON-looking line: {e}")
    return None


def parse_natural_language(message: str) -> List[ToolCall]:
    lowered = message.lower()
    tool_calls: List[ToolCall] = []

    if "read" in lowered and ("file" in lowered or "content" in lowered):
        path = extract_file_path(message)
        if path is not None:
            tool_calls.append(ToolCall(
                tool="read_file",
                parameters={"path": path},
                thought="Reading file content as requested",
                reasoning="User requested to read a file",
            ))

    if "search" in lowered or "find" in lowered:
        pattern = extract_search_pattern(message)
        if pattern is not None:
            tool_calls.append(ToolCall(
                tool="search_files",
                parameters={"pattern": pattern, "directory": "."},
                thought="Searching for files as requested",
                reasoning="User requested to search for files",
            ))

    if "list" in lowered and ("files" in lowered or "directory" in lowered):
        directory = extract_file_path(message) or "."
        tool_calls.append(ToolCall(
            tool="list_directory",
            parameters={"path": directory},
            thought="Listing directory contents as requested",
            reasoning="User requested to list files or directory contents",
        ))

    return tool_calls


def extract_file_path(message: str) -> Optional[str]:
    """Find the first word containing a dot, or a quoted run of words.

    Example:
        >>> extract_file_path('please read "my notes" now')
        'my notes'
    """
    words = message.split()
    for i, word in enumerate(words):
        if "." in word:
            return word
        if word[0] in QUOTES:
            for j in range(i, len(words)):
                if words[j][-1] in QUOTES:
                    return " ".join(words[i:j + 1]).strip(QUOTES)
    return None


def extract_search_pattern(message: str) -> Optional[str]:
    """Find a double-quoted term, then a single-quoted one, then the word after " for "."""
    for quote in ('"', "'"):
        start = message.find(quote)
        if start != -1:
            end = message.find(quote, start + 1)
            if end != -1:
                return message[start + 1:end]

    match = FOR_CLAUSE.search(message)
    if match:
        return message[match.end():].split(" ", 1)[0]

    return None

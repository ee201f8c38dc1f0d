"""
core/safety.py - Safety Manager (Sandbox Gate)

This module implements the gate that every tool call passes before execution.
It owns the path, extension, size, and content policy for file operations.

Responsibilities:
- Resolve and normalize paths against the working directory
- Enforce allowed / forbidden path prefixes
- Block sensitive file names (.env, keys, passwd, ...)
- Enforce extension allow-list and write size limit
- Reject dangerous or binary-looking content (write content and update replacement text)
- Dry-check individual files for tools that walk directories

Rules:
- Checks are read-only and short-circuit on the first failure
- Same input, same verdict (only add_allowed_path/add_forbidden_path change state)
- Path lists are append-only; revocation means building a new manager
- Heuristics only, this is not OS-level isolation

Example:
    safety = SafetyManager(AgentConfig(working_directory="/home/me/project"))
    safety.check_tool_call(ToolCall("read_file", {"path": "notes.md"}))   # OK
    safety.check_tool_call(ToolCall("read_file", {"path": "../x.md"}))    # Raises PathTraversalError
"""

import logging
import os
import re
import unicodedata
from pathlib import Path, PurePath
from typing import List, Union

from .types import AgentConfig, DIRECTORY_TOOLS, FILE_OPERATIONS, MODIFYING_TOOLS, ToolCall, ToolName

logger = logging.getLogger(__name__)


class SafetyError(Exception):
    """Exception raised when a tool call violates the safety policy."""
    pass


class MissingParameterError(SafetyError):
    """A file operation was issued without a usable `path` parameter."""
    pass


class PathTraversalError(SafetyError):
    """The path tries to climb out of its directory with `..`."""
    pass


class PathNotAllowedError(SafetyError):
    """The path is outside every allowed directory."""
    pass


class PathForbiddenError(SafetyError):
    """The path is inside an explicitly forbidden directory."""
    pass


class SensitivePathError(SafetyError):
    """The path names a credentials or system file."""
    pass


class ContentTooLargeError(SafetyError):
    """Content to write exceeds the configured size limit."""
    pass


class ExtensionNotAllowedError(SafetyError):
    """The file extension is not on the allow-list."""
    pass


class DangerousContentError(SafetyError):
    """Content contains a destructive command or injection marker."""
    pass


class BinaryContentRejectedError(SafetyError):
    """Content looks like binary data."""
    pass


DEFAULT_FORBIDDEN_PATHS = (
    "/etc",
    "/usr",
    "/bin",
    "/sbin",
    "/boot",
    "/dev",
    "/proc",
    "/sys",
    "/var/log",
    "/var/lib",
    "/root",
    "/home/*/.ssh",
    "/home/*/.gnupg",
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\Program Files (x86)",
    "C:\\System32",
)

SENSITIVE_PATTERNS = (
    "passwd", "shadow", "hosts", "sudoers", "ssh_config", "authorized_keys",
    "id_rsa", "id_dsa", "id_ecdsa", "id_ed25519", ".env", "config.json",
    "database.yml", "secrets.yml", "private.key", "certificate.pem",
)

DANGEROUS_PATTERNS = (
    "rm -rf", "del /s", "format c:", "dd if=", ":(){ :|:& };:",
    "sudo rm", "chmod 777", "wget http", "curl http",
    "eval(", "exec(", "system(", "shell_exec(",
    "<script", "javascript:", "data:text/html",
)

MAX_CONTROL_CHAR_RATIO = 0.1

PathLike = Union[str, PurePath]


def normalize_path(path: PurePath) -> Path:
    """Resolve `.` and `..` components without touching the filesystem.

    Symlinks are not followed. Popping past the root is an error.

    Raises:
        PathTraversalError: If `..` would climb above the root
    """
    anchor = path.anchor
    parts = path.parts[1:] if anchor else path.parts
    components: List[str] = []

    for part in parts:
        if part == ".":
            continue
        if part == "..":
            if not components:
                raise PathTraversalError(f"Path traversal outside root directory: {path}")
            components.pop()
        else:
            components.append(part)

    return Path(anchor, *components)


def _is_prefix(prefix: PurePath, path: PurePath) -> bool:
    """Component-wise prefix test (/etc covers /etc/x but not /etcetera)."""
    return path == prefix or prefix in path.parents


def _wildcard_regex(pattern: str) -> "re.Pattern[str]":
    return re.compile(".*".join(re.escape(piece) for piece in pattern.split("*")))


class SafetyManager:
    """Gate-keeper for tool calls.

    The manager holds two ordered lists:
    - allowed_paths: a path is allowed if one of these is a prefix of it
    - forbidden_paths: literal prefixes or `*` wildcard patterns

    Each manager owns its own copy of the default denylist and may extend it.
    """

    def __init__(self, config: AgentConfig):
        """Initialize with default restrictions derived from config.

        Args:
            config: Agent configuration (working directory, extensions, limits)
        """
        self.config = config
        self.working_directory = Path(config.working_directory)
        self._allowed_paths: List[Path] = [self.working_directory]
        self._forbidden_paths: List[Path] = [Path(p) for p in DEFAULT_FORBIDDEN_PATHS]

    # ------------------------------------------------------------------
    # Path policy
    # ------------------------------------------------------------------

    def resolve(self, path: PathLike) -> Path:
        """Join a relative path with the working directory and normalize it.

        Raises:
            PathTraversalError: If normalization climbs above the root
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.working_directory / path
        return normalize_path(path)

    def is_path_allowed(self, path: PurePath) -> bool:
        """Check a normalized absolute path against allowed_paths."""
        for allowed in self._allowed_paths:
            if not allowed.is_absolute():
                allowed = Path(os.getcwd()) / allowed
            try:
                normalized_allowed = normalize_path(allowed)
            except PathTraversalError:
                logger.warning(f"Ignoring unusable allowed path: {allowed}")
                continue
            if _is_prefix(normalized_allowed, path):
                return True
        return False

    def is_path_forbidden(self, path: PurePath) -> bool:
        """Check a normalized absolute path against forbidden_paths."""
        path_str = str(path)
        for forbidden in self._forbidden_paths:
            forbidden_str = str(forbidden)
            if "*" in forbidden_str:
                if _wildcard_regex(forbidden_str).search(path_str):
                    return True
            elif _is_prefix(forbidden, path):
                return True
        return False

    def would_allow_path(self, path: PathLike) -> bool:
        """Dry-check the allow/forbid policy for a path. Never raises."""
        try:
            normalized = self.resolve(path)
            return self.is_path_allowed(normalized) and not self.is_path_forbidden(normalized)
        except (SafetyError, OSError, ValueError):
            return False

    def is_sensitive_path(self, path: PurePath) -> bool:
        """Check a normalized path for credential and system file names."""
        lowered = str(path).lower()
        return any(pattern in lowered for pattern in SENSITIVE_PATTERNS)

    def would_allow_read(self, path: PathLike) -> bool:
        """Dry-check whether a file may be opened: scope plus sensitive names.

        Used by tools that reach files the call never named, such as a
        recursive search. Never raises.
        """
        if not self.would_allow_path(path):
            return False
        try:
            return not self.is_sensitive_path(self.resolve(path))
        except SafetyError:
            return False

    def add_allowed_path(self, path: PathLike) -> None:
        """Append a directory to the allow-list."""
        self._allowed_paths.append(Path(path))
        logger.info(f"Added allowed path: {path}")

    def add_forbidden_path(self, path: PathLike) -> None:
        """Append a prefix or wildcard pattern to the denylist."""
        self._forbidden_paths.append(Path(path))
        logger.info(f"Added forbidden path: {path}")

    @property
    def allowed_paths(self) -> List[Path]:
        return list(self._allowed_paths)

    @property
    def forbidden_paths(self) -> List[Path]:
        return list(self._forbidden_paths)

    # ------------------------------------------------------------------
    # Tool call checks
    # ------------------------------------------------------------------

    def check_tool_call(self, tool_call: ToolCall) -> None:
        """Check that a tool call is safe to execute.

        Args:
            tool_call: The call to inspect

        Raises:
            SafetyError: The first violated rule (see subclasses)
        """
        is_file_op = tool_call.tool in FILE_OPERATIONS
        is_modifying = tool_call.tool in MODIFYING_TOOLS

        if is_file_op:
            self._check_file_path(tool_call)
        elif tool_call.tool in DIRECTORY_TOOLS:
            self._check_directory_scope(tool_call)

        if is_modifying:
            self._check_content_size(tool_call)

        if is_file_op:
            self._check_extension(tool_call)

        if is_modifying:
            self._check_content(tool_call)

    def _path_parameter(self, tool_call: ToolCall) -> str:
        path = tool_call.parameters.get("path")
        if not isinstance(path, str):
            raise MissingParameterError(f"Missing path parameter for {tool_call.tool}")
        return path

    def _check_scope(self, normalized: Path) -> None:
        if not self.is_path_allowed(normalized):
            raise PathNotAllowedError(
                f"Path '{normalized}' is outside allowed directories"
            )
        if self.is_path_forbidden(normalized):
            raise PathForbiddenError(
                f"Path '{normalized}' is in a forbidden directory"
            )

    def _check_file_path(self, tool_call: ToolCall) -> None:
        raw_path = self._path_parameter(tool_call)
        normalized = self.resolve(raw_path)

        if ".." in raw_path:
            raise PathTraversalError(f"Path traversal detected: {raw_path}")

        self._check_scope(normalized)

        if self.is_sensitive_path(normalized):
            raise SensitivePathError(
                f"Access to potentially sensitive file '{normalized}' is not allowed"
            )

    def _check_directory_scope(self, tool_call: ToolCall) -> None:
        param = DIRECTORY_TOOLS[tool_call.tool]
        directory = tool_call.parameters.get(param, ".")
        if not isinstance(directory, str):
            # Type problems are reported by schema validation in the tool
            return
        self._check_scope(self.resolve(directory))

    @staticmethod
    def _payloads(tool_call: ToolCall) -> List[str]:
        """Text a modifying call would put on disk."""
        keys = ("content", "replacement") if tool_call.tool == ToolName.UPDATE_FILE.value else ("content",)
        return [
            value for value in (tool_call.parameters.get(key) for key in keys)
            if isinstance(value, str)
        ]

    def _check_content_size(self, tool_call: ToolCall) -> None:
        for payload in self._payloads(tool_call):
            size = len(payload.encode("utf-8"))
            if size > self.config.max_file_size:
                raise ContentTooLargeError(
                    f"Content size ({size} bytes) exceeds maximum allowed size "
                    f"({self.config.max_file_size} bytes)"
                )

    def _check_extension(self, tool_call: ToolCall) -> None:
        suffix = PurePath(self._path_parameter(tool_call)).suffix
        if not suffix:
            return
        extension = suffix[1:]
        if extension.lower() not in self.config.allowed_extensions:
            raise ExtensionNotAllowedError(
                f"File extension '{extension}' is not allowed. Allowed extensions: "
                f"{', '.join(sorted(self.config.allowed_extensions))}"
            )

    def _check_content(self, tool_call: ToolCall) -> None:
        for payload in self._payloads(tool_call):
            if payload:
                self._scan_text(payload)

    @staticmethod
    def _scan_text(content: str) -> None:
        lowered = content.lower()
        for pattern in DANGEROUS_PATTERNS:
            if pattern in lowered:
                raise DangerousContentError(
                    f"Content contains potentially dangerous pattern: '{pattern}'"
                )

        control_chars = sum(
            1 for c in content
            if c not in "\n\r\t" and unicodedata.category(c) == "Cc"
        )
        ratio = control_chars / len(content)
        if ratio > MAX_CONTROL_CHAR_RATIO:
            raise BinaryContentRejectedError(
                f"Content appears to contain binary data ({int(ratio * 100)}% non-text characters)"
            )

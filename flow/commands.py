"""
flow/commands.py - Agent Chat Commands

This module connects the Agent to a chat front end.

Responsibilities:
- Handle `/agent ...` control commands
- Run tool calls detected in chat messages and format their results
- Report when the current task looks complete

Rules:
- Every handler returns display text; printing is the caller's job
- Hard tool errors are logged and reported inline, never raised
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.types import AgentConfig, CompletionStatus, ToolResult
from flow.agent import Agent

logger = logging.getLogger(__name__)

NOT_INITIALIZED = "[ERROR] Agent mode is not initialized."
UNKNOWN_COMMAND = "[ERROR] Unknown agent command. Use '/agent help' for available commands."

MAX_SEARCH_MATCHES_SHOWN = 10
MAX_DIRECTORY_ENTRIES_SHOWN = 20

HELP_TEXT = "\n".join([
    "[AGENT] Agent Commands:",
    "   /agent on - Enable agent mode",
    "   /agent off - Disable agent mode",
    "   /agent status - Show agent status",
    "   /agent history - Show tool execution history",
    "   /agent clear - Clear tool execution history",
    "   /agent tools - List available tools and schemas",
    "   /agent config - Show agent configuration",
    "   /agent dry-run <on|off> - Toggle dry-run mode (no writes)",
    "   /agent allow-path <path> - Allow an extra path for tool access",
    "   /agent forbid-path <path> - Forbid a specific path",
    "   /agent check-path <path> - Check whether a path is allowed",
    "   /agent help - Show this help",
    "",
    "TIP: When agent mode is enabled, tool requests in your messages are",
    "   detected and executed automatically. For example:",
    "   - \"Please read the file notes.md\"",
    "   - \"Search for 'TODO' in all Python files\"",
    "   - \"List all files in the src directory\"",
    "   Structured JSON tool calls on their own line are the reliable form.",
])


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


class AgentCommands:
    """Chat-side controller for an optional Agent.

    The agent is created lazily by `/agent on` unless one is supplied.
    """

    def __init__(
        self,
        agent: Optional[Agent] = None,
        config_factory: Callable[[], AgentConfig] = AgentConfig,
    ):
        """Initialize the controller.

        Args:
            agent: Existing agent, if any
            config_factory: Builds the config used when `/agent on` creates an agent
        """
        self.agent = agent
        self.config_factory = config_factory

    # ------------------------------------------------------------------
    # /agent commands
    # ------------------------------------------------------------------

    def handle(self, args: str) -> str:
        """Run one `/agent` sub-command and return the text to display.

        Args:
            args: Everything after `/agent`
        """
        args = args.strip()
        command, _, rest = args.partition(" ")
        rest = rest.strip()

        if command in ("on", "enable") and not rest:
            return self._enable()
        if command == "help" and not rest:
            return HELP_TEXT

        handlers: Dict[str, Callable[[Agent, str], str]] = {
            "off": self._disable,
            "disable": self._disable,
            "status": self._status,
            "dry-run": self._dry_run,
            "history": self._history,
            "clear": self._clear,
            "tools": self._tools,
            "config": self._config,
            "allow-path": self._allow_path,
            "forbid-path": self._forbid_path,
            "check-path": self._check_path,
        }
        takes_argument = {"dry-run", "allow-path", "forbid-path", "check-path"}

        handler = handlers.get(command)
        if handler is None or (rest and command not in takes_argument):
            return UNKNOWN_COMMAND

        if self.agent is None:
            return NOT_INITIALIZED

        return handler(self.agent, rest)

    def _enable(self) -> str:
        if self.agent is None:
            self.agent = Agent(self.config_factory())
            self.agent.set_enabled(True)
            return (
                "[AGENT] Agent mode enabled! Tools can now be used for file operations.\n"
                f"   Available tools: {', '.join(self.agent.available_tools())}"
            )
        self.agent.set_enabled(True)
        return "[AGENT] Agent mode re-enabled!"

    def _disable(self, agent: Agent, _: str) -> str:
        agent.set_enabled(False)
        return "[AGENT] Agent mode disabled."

    def _status(self, agent: Agent, _: str) -> str:
        status = agent.status()
        return "\n".join([
            "[AGENT] Agent Status:",
            f"   Enabled: {_yes_no(status.enabled)}",
            f"   Tools executed: {status.tools_executed}",
            f"   Working directory: {status.working_directory}",
            f"   Dry run mode: {_yes_no(status.dry_run_mode)}",
            f"   Available tools: {', '.join(status.available_tools)}",
        ])

    def _dry_run(self, agent: Agent, value: str) -> str:
        if value not in ("on", "off"):
            return "Usage: /agent dry-run <on|off>"

        enabled = value == "on"
        agent.update_config(agent.config.with_changes(dry_run_mode=enabled))
        if enabled:
            return "[AGENT] Dry-run mode enabled. No changes will be written."
        return "[AGENT] Dry-run mode disabled."

    def _history(self, agent: Agent, _: str) -> str:
        history = agent.tool_history
        if not history:
            return "No tool execution history."

        lines = ["[AGENT] Tool Execution History:"]
        for i, call in enumerate(history, start=1):
            lines.append(f"   {i}. {call.tool} ({len(call.parameters)})")
            if call.thought:
                lines.append(f"      thought: {call.thought}")
        return "\n".join(lines)

    def _clear(self, agent: Agent, _: str) -> str:
        agent.clear_history()
        return "[AGENT] Tool execution history cleared."

    def _tools(self, agent: Agent, _: str) -> str:
        entries = "".join(f"\n\n{entry}" for entry in agent.tool_catalog())
        return f"[AGENT] Available Tools:{entries}"

    def _config(self, agent: Agent, _: str) -> str:
        config = agent.config
        lines = [
            "[AGENT] Agent Configuration:",
            f"   Enabled: {_yes_no(config.enabled)}",
            f"   Max file size: {config.max_file_size} bytes",
            f"   Working directory: {config.working_directory}",
            f"   Auto backup: {_yes_no(config.auto_backup)}",
            f"   Dry run mode: {_yes_no(config.dry_run_mode)}",
            f"   Allowed extensions: {', '.join(sorted(config.allowed_extensions))}",
        ]

        for title, paths in (
            ("Allowed paths", agent.allowed_paths()),
            ("Forbidden paths", agent.forbidden_paths()),
        ):
            if paths:
                lines.append(f"   {title}:")
                lines.extend(f"      - {path}" for path in paths)

        return "\n".join(lines)

    def _allow_path(self, agent: Agent, path: str) -> str:
        if not path:
            return "Usage: /agent allow-path <path>"
        agent.add_allowed_path(Path(path))
        return f"[AGENT] Added allowed path: {path}"

    def _forbid_path(self, agent: Agent, path: str) -> str:
        if not path:
            return "Usage: /agent forbid-path <path>"
        agent.add_forbidden_path(Path(path))
        return f"[AGENT] Added forbidden path: {path}"

    def _check_path(self, agent: Agent, path: str) -> str:
        if not path:
            return "Usage: /agent check-path <path>"
        if agent.is_path_allowed(path):
            return f"[OK] Path '{path}' is permitted by the safety manager."
        return f"[WARN] Path '{path}' would be blocked by safety rules."

    # ------------------------------------------------------------------
    # Chat messages
    # ------------------------------------------------------------------

    async def process_message(self, message: str) -> Optional[str]:
        """Execute tool calls found in a chat message.

        Returns:
            Formatted results joined by blank lines, or None if nothing ran
        """
        if self.agent is None or not self.agent.is_enabled:
            return None

        tool_calls = self.agent.detect_tool_calls(message)
        if not tool_calls:
            return None

        results: List[str] = []
        for call in tool_calls:
            logger.info(f"Executing tool: {call.tool}")
            try:
                result = await self.agent.execute_tool(call)
            except Exception as e:
                logger.error(f"Tool {call.tool} raised: {e}")
                results.append(f"Tool {call.tool} error: {e}")
                continue

            if result.success:
                results.append(format_tool_result(call.tool, result))
            else:
                error = result.message or "Unknown error"
                logger.warning(f"Tool {call.tool} failed: {error}")
                results.append(f"Tool {call.tool} failed: {error}")

        return "\n\n".join(results)

    def check_task_completion(
        self,
        recent_messages: List[str],
    ) -> Optional[Tuple[CompletionStatus, float, List[str]]]:
        """Return (status, confidence, matching patterns) once the task looks done."""
        agent = self.agent
        if agent is None or not agent.is_enabled:
            return None
        if not agent.is_task_complete(recent_messages):
            return None
        return (
            agent.completion_status(recent_messages),
            agent.completion_confidence(recent_messages),
            agent.completion_pattern_matches(recent_messages),
        )


def _field(data: Any, key: str, default: Any) -> Any:
    if isinstance(data, dict) and data.get(key) is not None:
        return data[key]
    return default


def format_tool_result(tool_name: str, result: ToolResult) -> str:
    """Render a successful tool result for display in chat."""
    data = result.data

    if tool_name == "read_file":
        content = _field(data, "content", None)
        if not isinstance(content, str):
            return "File read completed"
        path = _field(data, "path", "unknown")
        size = _field(data, "size", 0)
        return f"**File: {path}** ({size} bytes)\n```\n{content}\n```"

    if tool_name == "write_file":
        path = _field(data, "path", "unknown")
        size = _field(data, "size", 0)
        return f"**File written:** {path} ({size} bytes)"

    if tool_name == "update_file":
        path = _field(data, "path", "unknown")
        operation = _field(data, "operation", "unknown")
        return f"**File updated:** {path} (operation: {operation})"

    if tool_name == "search_files":
        pattern = _field(data, "pattern", "unknown")
        output = (
            f"**Search results for '{pattern}':** "
            f"{_field(data, 'matches_found', 0)} matches in "
            f"{_field(data, 'files_searched', 0)} files"
        )
        matches = _field(data, "results", [])
        if matches:
            output += "\n\n**Matches:**"
            for i, match in enumerate(matches[:MAX_SEARCH_MATCHES_SHOWN], start=1):
                output += f"\n{i}. **{match.get('file')}:{match.get('line')}** `{match.get('content')}`"
            if len(matches) > MAX_SEARCH_MATCHES_SHOWN:
                output += f"\n... and {len(matches) - MAX_SEARCH_MATCHES_SHOWN} more matches"
        return output

    if tool_name == "list_directory":
        path = _field(data, "path", "unknown")
        output = f"**Directory listing for '{path}':** {_field(data, 'entry_count', 0)} entries"
        entries = _field(data, "entries", [])
        if entries:
            output += "\n\n**Contents:**"
            for entry in entries[:MAX_DIRECTORY_ENTRIES_SHOWN]:
                marker = "[dir]" if entry.get("type") == "directory" else "[file]"
                output += f"\n{marker} {entry.get('name')}"
            if len(entries) > MAX_DIRECTORY_ENTRIES_SHOWN:
                output += f"\n... and {len(entries) - MAX_DIRECTORY_ENTRIES_SHOWN} more entries"
        return output

    if tool_name == "file_info":
        path = _field(data, "path", "unknown")
        size = _field(data, "size", 0)
        file_type = _field(data, "type", "unknown")
        return f"**File info for '{path}':** {size} bytes, type: {file_type}"

    return result.message or "Tool executed successfully"

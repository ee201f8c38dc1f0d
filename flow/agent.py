"""
flow/agent.py - Agent Coordinator

This module ties the safety gate, the tool dispatcher and the completion
judge together behind one object that a chat layer can drive.

Responsibilities:
- Own the agent configuration and the enabled flag
- Detect tool calls in chat text
- Execute tool calls and keep an ordered history
- Answer completion questions about the current task
- Expose runtime path policy changes

Rules:
- Calls are recorded in history BEFORE they are dispatched, so failed
  and rejected calls still count
- The executor and the agent share one SafetyManager
- Replacing the config rebuilds the safety manager and the executor
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from core.safety import SafetyManager
from core.types import (
    AgentConfig,
    AgentStatus,
    CompletionStatus,
    Tool,
    ToolCall,
    ToolResult,
)
from flow.execs import ToolExecutor
from flow.intent import parse_tool_calls
from flow.judge import CompletionDetector

logger = logging.getLogger(__name__)


class AgentDisabledError(RuntimeError):
    """A tool was executed while agent mode is off."""
    pass


def normalize_working_directory(path: Union[str, Path]) -> Path:
    """Make a working directory absolute against the process cwd."""
    path = Path(path)
    if path.is_absolute():
        return path
    return Path(os.getcwd()) / path


class Agent:
    """Sandboxed file-tool agent.

    Example:
        agent = Agent(AgentConfig(enabled=True, working_directory="/srv/notes"))
        for call in agent.detect_tool_calls('read the file todo.md'):
            result = await agent.execute_tool(call)
    """

    def __init__(self, config: Optional[AgentConfig] = None):
        """Initialize the agent.

        Args:
            config: Agent configuration (defaults to AgentConfig())
        """
        self._config = self._normalized(config or AgentConfig())
        self.completion_detector = CompletionDetector()
        self._tool_history: List[ToolCall] = []
        self._build_components()

    @staticmethod
    def _normalized(config: AgentConfig) -> AgentConfig:
        return config.with_changes(
            working_directory=normalize_working_directory(config.working_directory)
        )

    def _build_components(self) -> None:
        self.safety_manager = SafetyManager(self._config)
        self.executor = ToolExecutor(self._config, self.safety_manager)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    def set_enabled(self, enabled: bool) -> None:
        self._config.enabled = enabled
        logger.info(f"Agent mode {'enabled' if enabled else 'disabled'}")

    @property
    def config(self) -> AgentConfig:
        return self._config

    def update_config(self, config: AgentConfig) -> None:
        """Replace the configuration.

        Paths added at runtime with add_allowed_path/add_forbidden_path are
        discarded because the safety manager is rebuilt from the new config.
        """
        self._config = self._normalized(config)
        self._build_components()
        logger.info(f"Agent configuration updated (working directory: {self._config.working_directory})")

    # ------------------------------------------------------------------
    # Tool calls
    # ------------------------------------------------------------------

    def detect_tool_calls(self, message: str) -> List[ToolCall]:
        """Extract tool calls from chat text; nothing while disabled."""
        if not self.is_enabled:
            return []
        return parse_tool_calls(message)

    async def execute_tool(self, tool_call: ToolCall) -> ToolResult:
        """Dispatch a tool call and record it in history.

        Raises:
            AgentDisabledError: If agent mode is off
            ToolExecutionError: Hard dispatcher errors propagate unchanged
            SafetyError: Only MissingParameterError escapes the dispatcher
        """
        if not self.is_enabled:
            raise AgentDisabledError("Agent mode is not enabled")

        self._tool_history.append(tool_call.clone())
        try:
            return await self.executor.execute(tool_call)
        finally:
            self.completion_detector.record_tool_execution()

    @property
    def tool_history(self) -> List[ToolCall]:
        return list(self._tool_history)

    def clear_history(self) -> None:
        self._tool_history.clear()

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def is_task_complete(self, recent_messages: List[str]) -> bool:
        if not self.is_enabled:
            return False
        return self.completion_status(recent_messages).is_complete

    def completion_status(self, recent_messages: List[str]) -> CompletionStatus:
        return self.completion_detector.completion_status(recent_messages, self._tool_history)

    def completion_confidence(self, recent_messages: List[str]) -> float:
        return self.completion_detector.completion_confidence(recent_messages, self._tool_history)

    def completion_pattern_matches(self, recent_messages: List[str]) -> List[str]:
        return self.completion_detector.matching_patterns(recent_messages, self._tool_history)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def available_tools(self) -> List[str]:
        return self.executor.available_tools()

    def tool_definitions(self) -> List[Tool]:
        """Function-calling declarations for every tool."""
        return [
            Tool(name=info.name, description=info.description, parameters=info.parameters)
            for info in self.executor.tool_infos()
        ]

    def tool_catalog(self) -> List[str]:
        """Human-readable description of every tool."""
        return [
            info.format_description()
            for info in (self.executor.get_tool_info(name) for name in self.available_tools())
            if info is not None
        ]

    # ------------------------------------------------------------------
    # Path policy
    # ------------------------------------------------------------------

    def add_allowed_path(self, path: Union[str, Path]) -> None:
        self.safety_manager.add_allowed_path(path)

    def add_forbidden_path(self, path: Union[str, Path]) -> None:
        self.safety_manager.add_forbidden_path(path)

    def allowed_paths(self) -> List[Path]:
        return self.safety_manager.allowed_paths

    def forbidden_paths(self) -> List[Path]:
        return self.safety_manager.forbidden_paths

    def is_path_allowed(self, path: Union[str, Path]) -> bool:
        return self.safety_manager.would_allow_path(path)

    def status(self) -> AgentStatus:
        return AgentStatus(
            enabled=self._config.enabled,
            tools_executed=len(self._tool_history),
            working_directory=self._config.working_directory,
            dry_run_mode=self._config.dry_run_mode,
            available_tools=self.available_tools(),
        )

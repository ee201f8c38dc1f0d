"""
tests/flow/test_commands.py - Agent Chat Command Tests

This module tests flow/commands.py:
- /agent sub-commands
- Message processing and result formatting
- Completion reporting
"""

import pytest
import tempfile
import shutil
from pathlib import Path

from core.types import AgentConfig, CompletionStatus, ToolCall, ToolResult
from flow.agent import Agent
from flow.commands import (
    HELP_TEXT,
    NOT_INITIALIZED,
    UNKNOWN_COMMAND,
    AgentCommands,
    format_tool_result,
)


@pytest.fixture
def workdir():
    """Create a temporary working directory for testing."""
    temp_dir = tempfile.mkdtemp(prefix="agent_")
    yield Path(temp_dir)
    # Cleanup
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def commands(workdir):
    return AgentCommands(config_factory=lambda: AgentConfig(working_directory=workdir))


# ----------------------------------------------------------------------
# /agent commands
# ----------------------------------------------------------------------

def test_commands_need_an_agent(commands):
    for args in ("off", "status", "history", "clear", "tools", "config", "dry-run on", "check-path a.md"):
        assert commands.handle(args) == NOT_INITIALIZED


def test_on_creates_enabled_agent(commands, workdir):
    output = commands.handle("on")

    assert "Agent mode enabled" in output
    assert "read_file" in output
    assert commands.agent.is_enabled
    assert commands.agent.config.working_directory == workdir


def test_off_and_reenable(commands):
    commands.handle("enable")
    assert commands.handle("off") == "[AGENT] Agent mode disabled."
    assert not commands.agent.is_enabled
    assert commands.handle("on") == "[AGENT] Agent mode re-enabled!"
    assert commands.agent.is_enabled


def test_status(commands, workdir):
    commands.handle("on")
    output = commands.handle("status")
    assert "Enabled: Yes" in output
    assert "Tools executed: 0" in output
    assert f"Working directory: {workdir}" in output
    assert "Dry run mode: No" in output


def test_dry_run_toggle(commands):
    commands.handle("on")
    assert "enabled" in commands.handle("dry-run on")
    assert commands.agent.config.dry_run_mode
    assert "disabled" in commands.handle("dry-run off")
    assert not commands.agent.config.dry_run_mode
    assert commands.handle("dry-run") == "Usage: /agent dry-run <on|off>"
    assert commands.handle("dry-run maybe") == "Usage: /agent dry-run <on|off>"


@pytest.mark.asyncio
async def test_history_and_clear(commands):
    commands.handle("on")
    assert commands.handle("history") == "No tool execution history."

    await commands.agent.execute_tool(ToolCall("list_directory", {"path": "."}, thought="look around"))
    history = commands.handle("history")
    assert "1. list_directory (1)" in history
    assert "thought: look around" in history

    assert "cleared" in commands.handle("clear")
    assert commands.handle("history") == "No tool execution history."


def test_tools_lists_catalog(commands):
    commands.handle("on")
    output = commands.handle("tools")
    assert output.startswith("[AGENT] Available Tools:")
    assert "**update_file**" in output


def test_config(commands, workdir):
    commands.handle("on")
    output = commands.handle("config")
    assert "Max file size: 10485760 bytes" in output
    assert "Auto backup: Yes" in output
    assert "Allowed paths:" in output
    assert f"      - {workdir}" in output
    assert "      - /etc" in output


def test_path_commands(commands, workdir):
    commands.handle("on")
    assert commands.handle("allow-path") == "Usage: /agent allow-path <path>"
    assert "Added allowed path: /opt/shared" in commands.handle("allow-path /opt/shared")
    assert commands.handle("check-path /opt/shared/a.md").startswith("[OK]")

    assert "Added forbidden path" in commands.handle(f"forbid-path {workdir / 'locked'}")
    assert commands.handle(f"check-path {workdir / 'locked' / 'a.md'}").startswith("[WARN]")
    assert commands.handle("check-path /etc").startswith("[WARN]")


def test_help_and_unknown(commands):
    assert commands.handle("help") == HELP_TEXT
    assert commands.handle("dance") == UNKNOWN_COMMAND
    assert commands.handle("") == UNKNOWN_COMMAND
    assert commands.handle("status now") == UNKNOWN_COMMAND


# ----------------------------------------------------------------------
# Messages
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_process_message_without_agent(commands):
    assert await commands.process_message("read the file a.md") is None


@pytest.mark.asyncio
async def test_process_message_runs_tools(commands, workdir):
    (workdir / "a.md").write_text("hello")
    commands.handle("on")

    output = await commands.process_message("read the file a.md")

    assert f"**File: {workdir / 'a.md'}** (5 bytes)" in output
    assert "```\nhello\n```" in output


@pytest.mark.asyncio
async def test_process_message_reports_failures(commands):
    commands.handle("on")
    output = await commands.process_message("read the file missing.md")
    assert output.startswith("Tool read_file failed: File does not exist")


@pytest.mark.asyncio
async def test_process_message_reports_hard_errors(commands):
    commands.handle("on")
    output = await commands.process_message('{"tool": "teleport", "parameters": {}}')
    assert output == "Tool teleport error: Unknown tool: teleport"


@pytest.mark.asyncio
async def test_process_message_without_tool_request(commands):
    commands.handle("on")
    assert await commands.process_message("hello") is None


def test_check_task_completion(commands):
    assert commands.check_task_completion(["Task completed"]) is None

    commands.handle("on")
    assert commands.check_task_completion(["still going"]) is None

    commands.agent._tool_history.extend([ToolCall("read_file", {}), ToolCall("write_file", {})])
    status, confidence, patterns = commands.check_task_completion(["Task completed", "README updated"])
    assert status == CompletionStatus.COMPLETE
    assert confidence == 1.0
    assert patterns == ["documentation: Task involves creating or updating documentation"]


# ----------------------------------------------------------------------
# format_tool_result
# ----------------------------------------------------------------------

def test_format_write_and_update():
    assert format_tool_result("write_file", ToolResult.ok({"path": "a.md", "size": 3})) == \
        "**File written:** a.md (3 bytes)"
    assert format_tool_result("update_file", ToolResult.ok({"path": "a.md", "operation": "append"})) == \
        "**File updated:** a.md (operation: append)"


def test_format_search_truncates():
    results = [{"file": "a.py", "line": i, "content": "TODO"} for i in range(1, 13)]
    output = format_tool_result("search_files", ToolResult.ok({
        "pattern": "TODO", "matches_found": 12, "files_searched": 1, "results": results,
    }))
    assert output.startswith("**Search results for 'TODO':** 12 matches in 1 files")
    assert "10. **a.py:10** `TODO`" in output
    assert "11. **a.py:11**" not in output
    assert output.endswith("... and 2 more matches")


def test_format_listing_truncates():
    entries = [{"name": f"f{i}.md", "type": "file"} for i in range(22)] + [{"name": "sub", "type": "directory"}]
    output = format_tool_result("list_directory", ToolResult.ok({
        "path": ".", "entry_count": 23, "entries": entries,
    }))
    assert "[file] f0.md" in output
    assert "[file] f20.md" not in output
    assert output.endswith("... and 3 more entries")


def test_format_file_info_and_fallbacks():
    assert format_tool_result("file_info", ToolResult.ok({"path": "a.md", "size": 4, "type": "file"})) == \
        "**File info for 'a.md':** 4 bytes, type: file"
    assert format_tool_result("read_file", ToolResult.ok({})) == "File read completed"
    assert format_tool_result("custom", ToolResult.ok({}, "custom ran")) == "custom ran"
    assert format_tool_result("custom", ToolResult.ok({})) == "Tool executed successfully"

"""
tests/flow/test_executor.py - Tool Dispatcher Tests

This module tests flow/execs.py:
- Unknown tools and missing paths are hard errors
- Safety rejections are soft results
- Dry-run previews touch nothing
- Backups before write/update
- Parameter validation
"""

import pytest
import tempfile
import shutil
from datetime import datetime, timezone
from pathlib import Path

from core.safety import MissingParameterError, SafetyManager
from core.types import AgentConfig, ToolCall
from flow.execs import (
    BackupError,
    ToolExecutionError,
    ToolExecutor,
    ToolValidationError,
    UnknownToolError,
    backup_path_for,
    unused_backup_path,
    json_type_name,
)


@pytest.fixture
def workdir():
    """Create a temporary working directory for testing."""
    temp_dir = tempfile.mkdtemp(prefix="agent_")
    yield Path(temp_dir)
    # Cleanup
    shutil.rmtree(temp_dir, ignore_errors=True)


def make_executor(workdir, **overrides):
    config = AgentConfig(enabled=True, working_directory=workdir, **overrides)
    return ToolExecutor(config, SafetyManager(config))


def backups_of(path: Path):
    return sorted(path.parent.glob(f"{path.name}.backup_*"))


# ----------------------------------------------------------------------
# Error tiers
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_unknown_tool_is_hard_error(workdir):
    executor = make_executor(workdir)
    with pytest.raises(UnknownToolError, match="Unknown tool: delete_file"):
        await executor.execute(ToolCall("delete_file", {"path": "a.md"}))


@pytest.mark.asyncio
async def test_missing_path_is_hard_error(workdir):
    executor = make_executor(workdir)
    with pytest.raises(MissingParameterError):
        await executor.execute(ToolCall("read_file", {}))


@pytest.mark.asyncio
async def test_safety_rejection_is_soft(workdir):
    executor = make_executor(workdir)
    result = await executor.execute(ToolCall("write_file", {"path": "../escape.md", "content": "x"}))

    assert not result.success
    assert result.message.startswith("Safety check failed: ")
    assert not (workdir.parent / "escape.md").exists()


@pytest.mark.asyncio
async def test_tool_failure_is_soft(workdir):
    executor = make_executor(workdir)
    result = await executor.execute(ToolCall("read_file", {"path": "absent.md"}))
    assert not result.success
    assert "File does not exist" in result.message


def test_error_hierarchy():
    for error in (UnknownToolError, BackupError, ToolValidationError):
        assert issubclass(error, ToolExecutionError)


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_write_then_read_round_trip(workdir):
    executor = make_executor(workdir)
    write = await executor.execute(ToolCall("write_file", {"path": "plan.md", "content": "step 1"}))
    read = await executor.execute(ToolCall("read_file", {"path": "plan.md"}))

    assert write.success
    assert "backup_created" not in write.data
    assert read.data["content"] == "step 1"


@pytest.mark.asyncio
async def test_backup_before_overwrite(workdir):
    target = workdir / "plan.md"
    target.write_text("original")
    executor = make_executor(workdir)

    result = await executor.execute(ToolCall("write_file", {"path": "plan.md", "content": "new"}))

    backups = backups_of(target)
    assert result.success
    assert len(backups) == 1
    assert backups[0].read_text() == "original"
    assert result.data["backup_created"] == str(backups[0])
    assert target.read_text() == "new"


@pytest.mark.asyncio
async def test_backup_before_update(workdir):
    target = workdir / "plan.md"
    target.write_text("a")
    executor = make_executor(workdir)

    result = await executor.execute(
        ToolCall("update_file", {"path": "plan.md", "operation": "append", "replacement": "b"})
    )

    assert result.success
    assert "backup_created" in result.data
    assert target.read_text() == "a\nb"


@pytest.mark.asyncio
async def test_no_backup_when_disabled(workdir):
    target = workdir / "plan.md"
    target.write_text("original")
    executor = make_executor(workdir, auto_backup=False)

    result = await executor.execute(ToolCall("write_file", {"path": "plan.md", "content": "new"}))

    assert result.success
    assert backups_of(target) == []


@pytest.mark.asyncio
async def test_backup_failure_is_hard_error(workdir, monkeypatch):
    target = workdir / "plan.md"
    target.write_text("original")
    executor = make_executor(workdir)

    def broken_copy(src, dst):
        raise PermissionError("read-only directory")

    monkeypatch.setattr("flow.execs.shutil.copy2", broken_copy)

    with pytest.raises(BackupError):
        await executor.execute(ToolCall("write_file", {"path": "plan.md", "content": "new"}))
    assert target.read_text() == "original"


def test_backup_path_format():
    when = datetime(2024, 3, 9, 7, 5, 1, tzinfo=timezone.utc)
    assert backup_path_for(Path("/srv/notes/plan.md"), when) == Path(
        "/srv/notes/plan.md.backup_20240309_070501"
    )


@pytest.mark.asyncio
async def test_back_to_back_writes_keep_the_original(workdir):
    target = workdir / "notes.txt"
    target.write_text("ORIGINAL")
    executor = make_executor(workdir)

    first = await executor.execute(ToolCall("write_file", {"path": "notes.txt", "content": "first"}))
    second = await executor.execute(ToolCall("write_file", {"path": "notes.txt", "content": "second"}))

    backups = backups_of(target)
    assert first.success and second.success
    assert len(backups) == 2
    assert first.data["backup_created"] != second.data["backup_created"]
    assert Path(first.data["backup_created"]).read_text() == "ORIGINAL"
    assert Path(second.data["backup_created"]).read_text() == "first"
    assert target.read_text() == "second"


def test_unused_backup_path_adds_counter(workdir):
    when = datetime(2024, 3, 9, 7, 5, 1, tzinfo=timezone.utc)
    target = workdir / "plan.md"
    taken = backup_path_for(target, when)

    assert unused_backup_path(target, when) == taken

    taken.write_text("older")
    assert unused_backup_path(target, when) == workdir / "plan.md.backup_20240309_070501_1"

    (workdir / "plan.md.backup_20240309_070501_1").write_text("old")
    assert unused_backup_path(target, when) == workdir / "plan.md.backup_20240309_070501_2"


# ----------------------------------------------------------------------
# Search stays inside the policy
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_search_skips_files_read_file_refuses(workdir):
    (workdir / "secret").mkdir()
    (workdir / "secret" / "plan.txt").write_text("TOKEN=abc\n")
    (workdir / "config.json").write_text('{"TOKEN": "abc"}\n')
    (workdir / "public.txt").write_text("no secrets here\n")
    config = AgentConfig(enabled=True, working_directory=workdir)
    safety = SafetyManager(config)
    safety.add_forbidden_path(workdir / "secret")
    executor = ToolExecutor(config, safety)

    blocked_plan = await executor.execute(ToolCall("read_file", {"path": "secret/plan.txt"}))
    blocked_config = await executor.execute(ToolCall("read_file", {"path": "config.json"}))
    result = await executor.execute(ToolCall("search_files", {"pattern": "TOKEN"}))

    assert not blocked_plan.success
    assert not blocked_config.success
    assert result.success
    assert result.data["matches_found"] == 0
    assert result.data["files_searched"] == 1


# ----------------------------------------------------------------------
# Dry run
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_dry_run_changes_nothing(workdir):
    target = workdir / "plan.md"
    target.write_text("original")
    executor = make_executor(workdir, dry_run_mode=True)

    result = await executor.execute(ToolCall("write_file", {"path": "plan.md", "content": "new"}))

    assert result.success
    assert result.data["dry_run"] is True
    assert result.data["tool"] == "write_file"
    assert result.data["parameters"] == {"path": "plan.md", "content": "new"}
    assert result.message == "DRY RUN: Would execute write_file with given parameters"
    assert target.read_text() == "original"
    assert backups_of(target) == []


@pytest.mark.asyncio
async def test_dry_run_still_applies_safety(workdir):
    executor = make_executor(workdir, dry_run_mode=True)
    result = await executor.execute(ToolCall("write_file", {"path": "run.exe", "content": "x"}))
    assert not result.success
    assert "Safety check failed" in result.message


# ----------------------------------------------------------------------
# Validation and catalog
# ----------------------------------------------------------------------

def test_validate_missing_required(workdir):
    executor = make_executor(workdir)
    with pytest.raises(ToolValidationError, match="Missing required parameter: content"):
        executor.validate_tool_call(ToolCall("write_file", {"path": "a.md"}))


def test_validate_type_mismatch(workdir):
    executor = make_executor(workdir)
    with pytest.raises(ToolValidationError, match="Parameter 'recursive' has type 'string' but expected 'boolean'"):
        executor.validate_tool_call(ToolCall("list_directory", {"recursive": "yes"}))


def test_validate_integer_accepts_any_number(workdir):
    executor = make_executor(workdir)
    executor.validate_tool_call(ToolCall("search_files", {"pattern": "x", "max_results": 2.5}))


def test_validate_boolean_is_not_a_number(workdir):
    executor = make_executor(workdir)
    with pytest.raises(ToolValidationError, match="has type 'boolean' but expected 'integer'"):
        executor.validate_tool_call(ToolCall("search_files", {"pattern": "x", "max_results": True}))


def test_validate_ignores_undeclared_parameters(workdir):
    executor = make_executor(workdir)
    executor.validate_tool_call(ToolCall("read_file", {"path": "a.md", "extra": 1}))


def test_validate_unknown_tool(workdir):
    with pytest.raises(UnknownToolError):
        make_executor(workdir).validate_tool_call(ToolCall("nope", {}))


def test_json_type_name():
    assert json_type_name(True) == "boolean"
    assert json_type_name(3) == "number"
    assert json_type_name(None) == "null"
    assert json_type_name([1]) == "array"


def test_catalog(workdir):
    executor = make_executor(workdir)
    assert len(executor.available_tools()) == 6
    assert executor.get_tool_info("read_file").name == "read_file"
    assert executor.get_tool_info("nope") is None
    assert [i.name for i in executor.tool_infos()] == executor.available_tools()

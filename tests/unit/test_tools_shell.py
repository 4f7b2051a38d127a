"""
Unit tests for the shell-executor tool.

Tests cover:
- Command execution and output capture
- Allow-list and timeout ceiling enforcement
- Deadline kill of the whole process group
- Spawn failures
- Output size limiting
"""

import time
from pathlib import Path

import pytest

from plugintools.errors import (
    CommandNotAllowedError,
    ExecutionTimeoutError,
    InvalidParameterError,
    MissingParameterError,
    SpawnFailedError,
    TimeoutExceedsLimitError,
)
from plugintools.schema import ShellExecutorConfig
from plugintools.tools.dispatch import dispatch
from plugintools.tools.shell import ShellExecutorTool


@pytest.fixture
def tool(shell_config: ShellExecutorConfig) -> ShellExecutorTool:
    return ShellExecutorTool(shell_config)


class TestShellExecution:
    """Tests for running allowed commands."""

    def test_echo(self, tool: ShellExecutorTool) -> None:
        result = tool.run("echo hello world")
        assert result.exit_code == 0
        assert result.success is True
        assert result.stdout == "hello world\n"
        assert result.stderr == ""
        assert result.truncated is False

    def test_quoted_argument_kept_whole(self, tool: ShellExecutorTool) -> None:
        result = tool.run("echo 'a  b'")
        assert result.stdout == "a  b\n"

    def test_no_shell_expansion(self, tool: ShellExecutorTool) -> None:
        result = tool.run("echo $HOME; ls")
        assert result.stdout == "$HOME; ls\n"

    def test_nonzero_exit(self, tool: ShellExecutorTool) -> None:
        result = tool.run("false")
        assert result.exit_code != 0
        assert result.success is False

    def test_separate_streams(self, tool: ShellExecutorTool) -> None:
        result = tool.run("sh -c 'echo out; echo err >&2; exit 3'")
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"
        assert result.exit_code == 3

    def test_stdin_closed(self, tool: ShellExecutorTool) -> None:
        result = tool.run("sh -c 'cat'", timeout=5)
        assert result.success is True
        assert result.stdout == ""

    def test_working_dir(self, tool: ShellExecutorTool, temp_dir: Path) -> None:
        result = tool.run("pwd", working_dir=str(temp_dir))
        assert result.stdout.strip() == str(temp_dir)

    def test_missing_working_dir(self, tool: ShellExecutorTool, temp_dir: Path) -> None:
        with pytest.raises(SpawnFailedError):
            tool.run("pwd", working_dir=str(temp_dir / "missing"))

    def test_program_not_found(self) -> None:
        tool = ShellExecutorTool(
            ShellExecutorConfig(allowed_commands=["plugintools-no-such-program"])
        )
        with pytest.raises(SpawnFailedError) as exc_info:
            tool.run("plugintools-no-such-program --help")
        assert exc_info.value.context["command"] == "plugintools-no-such-program"


class TestShellPolicy:
    """Tests for allow-list and timeout checks."""

    def test_not_allowed(self, tool: ShellExecutorTool) -> None:
        with pytest.raises(CommandNotAllowedError):
            tool.run("rm -rf /tmp/nothing")

    def test_empty_command(self, tool: ShellExecutorTool) -> None:
        with pytest.raises(InvalidParameterError):
            tool.run("   ")

    def test_timeout_above_max(self, tool: ShellExecutorTool) -> None:
        with pytest.raises(TimeoutExceedsLimitError):
            tool.run("echo hi", timeout=11)

    def test_timeout_not_positive(self, tool: ShellExecutorTool) -> None:
        with pytest.raises(InvalidParameterError):
            tool.run("echo hi", timeout=0)


class TestShellTimeout:
    """Tests for deadline enforcement."""

    def test_sleep_killed_at_deadline(self, tool: ShellExecutorTool) -> None:
        started = time.monotonic()
        with pytest.raises(ExecutionTimeoutError) as exc_info:
            tool.run("sleep 5", timeout=1)
        elapsed = time.monotonic() - started

        assert elapsed < 1.5
        assert exc_info.value.context["timeout_seconds"] == 1
        assert exc_info.value.message == "Command timed out after 1 seconds"

    def test_grandchildren_killed(self, tool: ShellExecutorTool) -> None:
        # sleep inherits the pipes; reaping only returns once it is dead too
        started = time.monotonic()
        with pytest.raises(ExecutionTimeoutError):
            tool.run("sh -c 'sleep 5; echo never'", timeout=1)
        assert time.monotonic() - started < 2.5


class TestShellOutputLimit:
    """Tests for max_output_bytes."""

    def test_truncated(self) -> None:
        tool = ShellExecutorTool(
            ShellExecutorConfig(allowed_commands=["echo"], max_output_bytes=100)
        )
        result = tool.run("echo " + "x" * 500)
        assert result.truncated is True
        assert "[truncated, exceeded 100 bytes]" in result.stdout
        assert len(result.stdout.encode()) <= 100


class TestShellExecute:
    """Tests for execute() through dispatch."""

    def test_dispatch_success(self, tool: ShellExecutorTool) -> None:
        output = dispatch(tool, {"command": "echo hi", "timeout": "5"})
        assert output.success is True
        assert output.data == {
            "exit_code": 0,
            "stdout": "hi\n",
            "stderr": "",
            "success": True,
            "truncated": False,
        }
        assert output.metadata["exit_code"] == 0
        assert output.metadata["stdout_size"] == 3

    def test_dispatch_missing_command(self, tool: ShellExecutorTool) -> None:
        output = dispatch(tool, {})
        assert isinstance(output.failure, MissingParameterError)

    def test_dispatch_denied(self, tool: ShellExecutorTool) -> None:
        output = dispatch(tool, {"command": "curl example.com"})
        assert isinstance(output.failure, CommandNotAllowedError)
        assert output.failure.kind == "permission"

    def test_dispatch_timeout(self, tool: ShellExecutorTool) -> None:
        output = dispatch(tool, {"command": "sleep 5", "timeout": 1})
        assert isinstance(output.failure, ExecutionTimeoutError)
        assert output.failure.kind == "timeout"

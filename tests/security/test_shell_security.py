"""
Security tests for the shell-executor tool.

These tests verify that:
- Only allow-listed program names can run
- Denied commands never spawn a process
- Shell metacharacters are passed as literal arguments
- A timed-out command leaves no processes behind
"""

import os
import subprocess
import time
from pathlib import Path
from typing import Any

import pytest

from plugintools.errors import (
    CommandNotAllowedError,
    ExecutionTimeoutError,
    TerminationFailedError,
    TimeoutExceedsLimitError,
)
from plugintools.schema import ShellExecutorConfig
from plugintools.tools.shell import ShellExecutorTool


@pytest.fixture
def tool() -> ShellExecutorTool:
    return ShellExecutorTool(ShellExecutorConfig(allowed_commands=["echo", "sleep"], max_timeout=5))


class TestAllowList:
    """Only exact program names from allowed_commands run."""

    @pytest.mark.parametrize(
        "command",
        [
            "rm -rf /",
            "bash -c 'echo pwned'",
            "/bin/echo hi",
            "./echo hi",
            "ECHO hi",
            "python3 -c 'print(1)'",
        ],
    )
    def test_denied(self, tool: ShellExecutorTool, command: str) -> None:
        with pytest.raises(CommandNotAllowedError):
            tool.run(command)

    def test_empty_allowlist(self) -> None:
        tool = ShellExecutorTool(ShellExecutorConfig())
        with pytest.raises(CommandNotAllowedError):
            tool.run("echo hi")

    def test_denied_command_never_spawns(
        self,
        tool: ShellExecutorTool,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        spawned: list[object] = []

        def fake_popen(*args: object, **kwargs: object) -> None:
            spawned.append(args)
            raise AssertionError("Popen must not be called")

        monkeypatch.setattr(subprocess, "Popen", fake_popen)
        with pytest.raises(CommandNotAllowedError):
            tool.run("touch /tmp/plugintools-pwned")
        assert spawned == []


class TestNoShellInterpretation:
    """Metacharacters reach the program as plain arguments."""

    @pytest.mark.parametrize(
        ("command", "expected"),
        [
            ("echo hi; touch /tmp/plugintools-pwned", "hi; touch /tmp/plugintools-pwned\n"),
            ("echo hi && echo again", "hi && echo again\n"),
            ("echo hi | cat", "hi | cat\n"),
            ("echo `id`", "`id`\n"),
            ("echo $(id)", "$(id)\n"),
        ],
    )
    def test_literal(self, tool: ShellExecutorTool, command: str, expected: str) -> None:
        assert tool.run(command).stdout == expected

    def test_redirect_not_applied(self, tool: ShellExecutorTool, temp_dir: Path) -> None:
        target = temp_dir / "out.txt"
        result = tool.run(f"echo hi > {target}")
        assert result.stdout == f"hi > {target}\n"
        assert not target.exists()


class TestTimeoutCleanup:
    """A killed command leaves nothing running."""

    def test_timeout_returns_promptly(self, tool: ShellExecutorTool) -> None:
        started = time.monotonic()
        with pytest.raises(ExecutionTimeoutError):
            tool.run("sleep 5", timeout=1)
        assert time.monotonic() - started < 1.5

    def test_timeout_capped(self, tool: ShellExecutorTool) -> None:
        with pytest.raises(TimeoutExceedsLimitError):
            tool.run("sleep 1", timeout=3600)

    @pytest.mark.skipif(os.name != "posix", reason="process groups need POSIX")
    def test_no_process_survives_timeout(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        tool = ShellExecutorTool(ShellExecutorConfig(allowed_commands=["sh"], max_timeout=5))
        spawned = record_popen(monkeypatch)
        pid_file = temp_dir / "grandchild.pid"

        with pytest.raises(ExecutionTimeoutError):
            tool.run(f"sh -c 'sleep 30 & echo $! > {pid_file}; wait'", timeout=1)

        assert len(spawned) == 1
        assert spawned[0].returncode is not None
        assert process_gone(spawned[0].pid)
        assert wait_gone(int(pid_file.read_text()))

    @pytest.mark.skipif(os.name != "posix", reason="process groups need POSIX")
    def test_failed_kill_raises(
        self, tool: ShellExecutorTool, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        spawned = record_popen(monkeypatch)

        def denied(pid: int, sig: int) -> None:
            raise PermissionError(1, "Operation not permitted")

        monkeypatch.setattr(os, "killpg", denied)
        try:
            with pytest.raises(TerminationFailedError) as exc_info:
                tool.run("sleep 5", timeout=1)
        finally:
            for process in spawned:
                process.kill()
                process.wait()

        assert exc_info.value.kind == "execution"
        assert str(spawned[0].pid) in str(exc_info.value)


def record_popen(monkeypatch: pytest.MonkeyPatch) -> list[subprocess.Popen]:
    """Patch subprocess.Popen to keep every process it starts."""
    spawned: list[subprocess.Popen] = []
    real_popen = subprocess.Popen

    def recording(*args: Any, **kwargs: Any) -> subprocess.Popen:
        process = real_popen(*args, **kwargs)
        spawned.append(process)
        return process

    monkeypatch.setattr(subprocess, "Popen", recording)
    return spawned


def process_gone(pid: int) -> bool:
    """True if pid no longer exists or is a zombie awaiting its parent."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    try:
        state = Path(f"/proc/{pid}/stat").read_text().rsplit(")", 1)[1].split()[0]
    except (OSError, IndexError):
        return True
    return state == "Z"


def wait_gone(pid: int, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while not process_gone(pid):
        if time.monotonic() > deadline:
            return False
        time.sleep(0.05)
    return True

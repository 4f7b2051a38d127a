"""
Process execution tool for plugintools.

This module provides the shell-executor tool:
- Runs one allow-listed command per invocation
- Captures stdout and stderr into independent buffers
- Kills the process when its deadline passes

Security Note:
    CRITICAL SECURITY MEASURES:
    - The command line is split with shlex and run WITHOUT a shell
      (no pipes, redirects, globbing or variable expansion)
    - The program name must exactly match an allowed_commands entry
    - The timeout is capped by max_timeout
    - Output size is capped by max_output_bytes

Cancellation:
    The process runs in its own session. On timeout the whole process
    group is killed and reaped, so no child outlives the invocation.
"""

import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import Any

from plugintools.errors import (
    ExecutionTimeoutError,
    InvalidParameterError,
    SpawnFailedError,
    TerminationFailedError,
)
from plugintools.policy import CommandPolicy, split_command
from plugintools.schema import (
    ParameterSpec,
    ParamType,
    ProcessExecutionResult,
    ShellExecutorConfig,
    ToolDescriptor,
)
from plugintools.tools.base import Tool, ToolContext, ToolOutput

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30

# How long to wait for a killed process to be reaped
REAP_TIMEOUT_SECONDS = 5


class ShellExecutorTool(Tool):
    """
    Execute allow-listed commands with a deadline.

    Arguments:
        command (str): Command line, e.g. "git status --short" (required)
        timeout (int): Deadline in seconds (optional, default 30)
        working_dir (str): Working directory (optional, default inherited)

    Returns:
        On success: Dict with exit_code, stdout, stderr, success, truncated
        On failure: CommandNotAllowedError, TimeoutExceedsLimitError,
                    SpawnFailedError, ExecutionTimeoutError or
                    TerminationFailedError

    Example:
        tool = ShellExecutorTool(ShellExecutorConfig(allowed_commands=["echo"]))
        result = tool.run("echo hello world")
        print(result.stdout)  # "hello world\\n"
    """

    descriptor = ToolDescriptor(
        id="shell-executor",
        name="Shell Executor",
        description="Execute shell commands with timeout and output capture",
        version="1.0.0",
        category="System",
    )

    parameters = (
        ParameterSpec(
            name="command",
            type=ParamType.STRING,
            required=True,
            description="Shell command to execute",
        ),
        ParameterSpec(
            name="timeout",
            type=ParamType.INTEGER,
            required=False,
            default=DEFAULT_TIMEOUT_SECONDS,
            description="Command execution timeout in seconds",
        ),
        ParameterSpec(
            name="working_dir",
            type=ParamType.STRING,
            required=False,
            description="Working directory for command execution",
        ),
    )

    def __init__(self, config: ShellExecutorConfig) -> None:
        self.config = config
        self.policy = CommandPolicy(config)

    def execute(self, params: dict[str, Any], context: ToolContext) -> ToolOutput:
        result = self.run(
            params["command"],
            timeout=params.get("timeout", DEFAULT_TIMEOUT_SECONDS),
            working_dir=params.get("working_dir"),
        )
        return ToolOutput.ok(
            result.model_dump(),
            exit_code=result.exit_code,
            stdout_size=len(result.stdout),
            stderr_size=len(result.stderr),
        )

    def run(
        self,
        command: str,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        working_dir: str | None = None,
    ) -> ProcessExecutionResult:
        """
        Run one command to completion or until its deadline.

        Args:
            command: Command line; its first token is the program name
            timeout: Deadline in seconds
            working_dir: Working directory, or None to inherit

        Returns:
            ProcessExecutionResult of the completed process

        Raises:
            InvalidParameterError: Empty/unparsable command or non-positive timeout
            CommandNotAllowedError: Program name not allow-listed
            TimeoutExceedsLimitError: Timeout above max_timeout
            SpawnFailedError: The OS could not start the process
            ExecutionTimeoutError: Deadline passed; the process was killed
            TerminationFailedError: Deadline passed and the kill failed
        """
        argv = split_command(command, tool=self.id)
        self.policy.require_command(argv, tool=self.id)

        if timeout <= 0:
            raise InvalidParameterError(
                tool=self.id,
                parameter="timeout",
                reason="timeout must be positive",
            )
        self.policy.require_timeout(timeout)

        cwd = working_dir or None
        if cwd is not None and not Path(cwd).is_dir():
            raise SpawnFailedError(
                command=argv[0],
                underlying_error=f"working directory does not exist: {cwd}",
            )

        # CRITICAL: shell=False (the default) - argv is passed verbatim
        try:
            process = subprocess.Popen(
                argv,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                shell=False,
                start_new_session=(os.name == "posix"),
            )
        except OSError as e:
            raise SpawnFailedError(command=argv[0], underlying_error=str(e)) from e

        logger.debug("Started pid %s: %s", process.pid, argv)

        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            self._terminate(process)
            logger.warning("Killed pid %s after %ss: %s", process.pid, timeout, command)
            raise ExecutionTimeoutError(timeout_seconds=timeout, command=command) from None

        stdout, stderr, truncated = self._limit_output(stdout, stderr)
        return ProcessExecutionResult(
            exit_code=process.returncode,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            success=process.returncode == 0,
            truncated=truncated,
        )

    def _terminate(self, process: subprocess.Popen) -> None:
        """
        Forcibly kill a process (and its session) and reap it.

        Raises:
            TerminationFailedError: If the kill signal can't be delivered or
                                    the process doesn't exit afterwards
        """
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            # Exited between the deadline and the kill
            pass
        except OSError as e:
            raise TerminationFailedError(pid=process.pid, underlying_error=str(e)) from e

        try:
            process.communicate(timeout=REAP_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired as e:
            raise TerminationFailedError(
                pid=process.pid,
                underlying_error="process did not exit after SIGKILL",
            ) from e

    def _limit_output(self, stdout: bytes, stderr: bytes) -> tuple[bytes, bytes, bool]:
        """Truncate captured output to max_output_bytes, split between streams."""
        max_output_bytes = self.config.max_output_bytes
        if len(stdout) + len(stderr) <= max_output_bytes:
            return stdout, stderr, False

        truncate_bytes = f"\n... [truncated, exceeded {max_output_bytes} bytes]".encode()
        half = max_output_bytes // 2
        keep = max(half - len(truncate_bytes), 0)

        if len(stdout) > half:
            stdout = stdout[:keep] + truncate_bytes
        if len(stderr) > half:
            stderr = stderr[:keep] + truncate_bytes
        return stdout, stderr, True


def _decode(data: bytes) -> str:
    """Decode captured output as UTF-8, replacing undecodable bytes."""
    return data.decode("utf-8", errors="replace")

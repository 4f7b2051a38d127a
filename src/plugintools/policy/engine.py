"""
Policy checks for plugintools tools.

Two allow-list gates protect the host:
    - CommandPolicy: the program name of a command line must be allow-listed,
      and the requested timeout must not exceed the configured maximum
    - PathPolicy: every path must resolve inside an allow-listed root, and
      copy sources must not exceed the configured size ceiling

How it works:
    1. A tool constructs its policy from its configuration section
    2. evaluate_*() returns a PolicyDecision (allow/deny with reason)
    3. require_*() raises the matching typed error on denial

Security Note:
    This module is security-critical. Paths are resolved (., .. and
    symlinks) before containment is checked, so traversal sequences
    can't escape a root. Command matching is on the program name only;
    it is a coarse gate, not a sandbox.
"""

import shlex
from pathlib import Path

from plugintools.errors import (
    CommandNotAllowedError,
    FileTooLargeError,
    InvalidParameterError,
    PathNotAllowedError,
    TimeoutExceedsLimitError,
)
from plugintools.schema import FileManagerConfig, PolicyDecision, ShellExecutorConfig


# =============================================================================
# Command Policy
# =============================================================================


def split_command(command: str, tool: str = "") -> list[str]:
    """
    Split a command line into argv using POSIX shell quoting rules.

    Raises:
        InvalidParameterError: If the line is empty or has unbalanced quotes
    """
    try:
        argv = shlex.split(command)
    except ValueError as e:
        raise InvalidParameterError(
            tool=tool,
            parameter="command",
            reason=f"cannot parse command line: {e}",
        ) from e
    if not argv:
        raise InvalidParameterError(
            tool=tool,
            parameter="command",
            reason="command cannot be empty",
        )
    return argv


class CommandPolicy:
    """
    Allow-list and timeout ceiling for the shell-executor tool.

    Usage:
        policy = CommandPolicy(config.tools.shell_executor)
        decision = policy.evaluate_command(["git", "status"])
    """

    def __init__(self, config: ShellExecutorConfig) -> None:
        self.config = config
        self._allowed = frozenset(config.allowed_commands)

    def evaluate_command(self, argv: list[str]) -> PolicyDecision:
        """
        Check the leading token of argv against allowed_commands.

        The token must match an entry exactly; "/bin/echo" does not match
        an allow-list entry of "echo".
        """
        if not argv:
            return PolicyDecision.deny("Command is empty", rule="cmd_empty")

        if not self._allowed:
            return PolicyDecision.deny(
                "No commands allowed for shell-executor",
                rule="allowed_commands=[]",
            )

        program = argv[0]
        if program not in self._allowed:
            return PolicyDecision.deny(
                f"Command not in allowlist: {program}",
                rule="allowed_commands",
            )

        return PolicyDecision.allow(
            f"Command allowed: {program}",
            rule=f"allowed_commands[{program}]",
        )

    def evaluate_timeout(self, timeout_seconds: int) -> PolicyDecision:
        """Check a requested timeout against max_timeout."""
        if timeout_seconds > self.config.max_timeout:
            return PolicyDecision.deny(
                f"Timeout {timeout_seconds}s exceeds limit {self.config.max_timeout}s",
                rule="max_timeout",
            )
        return PolicyDecision.allow("Timeout within limit", rule="max_timeout")

    def require_command(self, argv: list[str], tool: str = "") -> None:
        """Raise CommandNotAllowedError unless evaluate_command() allows argv."""
        decision = self.evaluate_command(argv)
        if not decision.allowed:
            raise CommandNotAllowedError(
                command=argv[0] if argv else "",
                reason=decision.reason,
                rule=decision.rule_matched,
                context={"tool": tool},
            )

    def require_timeout(self, timeout_seconds: int) -> None:
        """Raise TimeoutExceedsLimitError unless the timeout is within limit."""
        decision = self.evaluate_timeout(timeout_seconds)
        if not decision.allowed:
            raise TimeoutExceedsLimitError(
                limit=self.config.max_timeout,
                requested=timeout_seconds,
            )


# =============================================================================
# Path Policy
# =============================================================================


def resolve_path(path: str | Path) -> Path:
    """
    Resolve a path to an absolute, normalized path.

    Relative paths are taken relative to the process working directory.
    resolve(strict=False) allows destinations that don't exist yet.
    """
    return Path(path).expanduser().resolve()


def is_sub_path(parent: Path, child: Path) -> bool:
    """Whether child equals parent or lies beneath it (both resolved)."""
    try:
        child.relative_to(parent)
    except ValueError:
        return False
    return True


class PathPolicy:
    """
    Root containment and size ceiling for the file-manager tool.

    Usage:
        policy = PathPolicy(config.tools.file_manager)
        resolved = policy.require_path("/srv/data/report.txt")
    """

    def __init__(self, config: FileManagerConfig) -> None:
        self.config = config

    def allowed_roots(self) -> list[Path]:
        """Resolve the configured roots; unresolvable roots are skipped."""
        roots = []
        for root in self.config.allowed_paths:
            try:
                roots.append(resolve_path(root))
            except (OSError, RuntimeError, ValueError):
                continue
        return roots

    def evaluate_path(self, path: str | Path) -> PolicyDecision:
        """
        Check that a path resolves inside an allowed root.

        Security checks performed:
        1. Path must be non-empty
        2. Path is resolved (., .. and symlinks)
        3. Some allowed root must be an ancestor of (or equal to) the result
        """
        if not str(path).strip():
            return PolicyDecision.deny("No path provided", rule="missing_argument")

        try:
            resolved = resolve_path(path)
        except (OSError, RuntimeError, ValueError) as e:
            return PolicyDecision.deny(f"Invalid path: {e}", rule="invalid_path")

        roots = self.allowed_roots()
        if not roots:
            return PolicyDecision.deny(
                "No paths allowed for file-manager",
                rule="allowed_paths=[]",
            )

        for root in roots:
            if is_sub_path(root, resolved):
                return PolicyDecision.allow(
                    f"Path allowed by root: {root}",
                    rule=f"allowed_paths[{root}]",
                )

        return PolicyDecision.deny(
            f"Path not in allowlist: {path} (resolves to {resolved})",
            rule="allowed_paths",
        )

    def evaluate_file_size(self, size: int) -> PolicyDecision:
        """Check a file size against max_file_size."""
        if size > self.config.max_file_size:
            return PolicyDecision.deny(
                f"File size {size} exceeds limit {self.config.max_file_size}",
                rule="max_file_size",
            )
        return PolicyDecision.allow("File size within limit", rule="max_file_size")

    def require_path(self, path: str | Path) -> Path:
        """
        Resolve a path, raising PathNotAllowedError if it escapes every root.

        Returns:
            The resolved absolute path
        """
        decision = self.evaluate_path(path)
        if not decision.allowed:
            raise PathNotAllowedError(
                path=str(path),
                reason=decision.reason,
                rule=decision.rule_matched,
            )
        return resolve_path(path)

    def require_file_size(self, path: Path, size: int) -> None:
        """Raise FileTooLargeError if size is above max_file_size."""
        decision = self.evaluate_file_size(size)
        if not decision.allowed:
            raise FileTooLargeError(
                limit=self.config.max_file_size,
                path=str(path),
                actual_size=size,
            )

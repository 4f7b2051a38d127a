"""
Exception hierarchy for plugintools.

All plugintools exceptions inherit from PluginToolsError, allowing callers to
catch every tool failure with a single except clause.

Exception Categories:
    - ValidationError: Missing or malformed parameters
    - NotFoundError: Unknown tool or task identity
    - PermissionDeniedError: Path or command not in an allow-list
    - CapacityError: A configured ceiling was reached
    - ToolTimeoutError: A process deadline was exceeded
    - ExecutionError: Spawn, I/O or termination failure
    - ConfigError: Configuration could not be loaded

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (tool, parameter, ids where applicable)
    - Errors are designed to be both human-readable and machine-parseable
    - Tools raise these errors; dispatch turns them into failed ToolOutputs
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Validation errors: 1xxx
ERROR_VALIDATION = 1000
ERROR_MISSING_PARAMETER = 1001
ERROR_INVALID_PARAMETER = 1002
ERROR_MISSING_TITLE = 1003
ERROR_INVALID_DUE_TIME = 1004
ERROR_INVALID_STATUS = 1005
ERROR_DUPLICATE_TOOL = 1006

# Not found errors: 2xxx
ERROR_NOT_FOUND = 2000
ERROR_TOOL_NOT_FOUND = 2001
ERROR_TASK_NOT_FOUND = 2002

# Permission errors: 3xxx
ERROR_PERMISSION_DENIED = 3000
ERROR_COMMAND_NOT_ALLOWED = 3001
ERROR_PATH_NOT_ALLOWED = 3002

# Capacity errors: 4xxx
ERROR_CAPACITY = 4000
ERROR_CAPACITY_EXCEEDED = 4001
ERROR_TIMEOUT_EXCEEDS_LIMIT = 4002
ERROR_FILE_TOO_LARGE = 4003

# Timeout errors: 5xxx
ERROR_TIMEOUT = 5000
ERROR_EXECUTION_TIMEOUT = 5001

# Execution errors: 6xxx
ERROR_EXECUTION = 6000
ERROR_SPAWN_FAILED = 6001
ERROR_TERMINATION_FAILED = 6002
ERROR_FILE_OPERATION = 6003

# Configuration errors: 7xxx
ERROR_CONFIG = 7001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class PluginToolsError(Exception):
    """
    Base exception for all plugintools errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    # Failure kind used by the HTTP boundary to choose a status code
    kind = "error"

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


@dataclass
class ValidationError(PluginToolsError):
    """
    Raised when a request is incomplete or a parameter is malformed.

    Attributes:
        tool: Identity of the tool being invoked (if known)
    """

    tool: str = ""

    kind = "validation"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_VALIDATION
        self.context["tool"] = self.tool


@dataclass
class MissingParameterError(ValidationError):
    """Raised when a required parameter is absent from the request."""

    parameter: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Missing required parameter: {self.parameter}"
        if self.code == 0:
            self.code = ERROR_MISSING_PARAMETER
        super().__post_init__()
        self.context["parameter"] = self.parameter


@dataclass
class InvalidParameterError(ValidationError):
    """Raised when a parameter value cannot be interpreted."""

    parameter: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid parameter '{self.parameter}': {self.reason}"
        if self.code == 0:
            self.code = ERROR_INVALID_PARAMETER
        super().__post_init__()
        self.context.update({
            "parameter": self.parameter,
            "reason": self.reason,
        })


@dataclass
class MissingTitleError(ValidationError):
    """Raised when a task is created without a title."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Title is required for create operation"
        if self.code == 0:
            self.code = ERROR_MISSING_TITLE
        super().__post_init__()


@dataclass
class InvalidDueTimeError(ValidationError):
    """Raised when a due time string is not a valid RFC 3339 timestamp."""

    value: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid due_time format: {self.value!r}"
        if self.code == 0:
            self.code = ERROR_INVALID_DUE_TIME
        if not self.suggestion:
            self.suggestion = "Use RFC 3339, e.g. 2026-01-31T09:00:00Z"
        super().__post_init__()
        self.context["value"] = self.value


@dataclass
class InvalidStatusError(ValidationError):
    """Raised when a task status is not one of the known states."""

    value: str = ""
    allowed: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid status {self.value!r}, expected one of {self.allowed}"
        if self.code == 0:
            self.code = ERROR_INVALID_STATUS
        super().__post_init__()
        self.context.update({
            "value": self.value,
            "allowed": self.allowed,
        })


@dataclass
class DuplicateToolError(ValidationError):
    """Raised when registering a tool whose identity is empty or taken."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            if self.tool:
                self.message = f"Tool with ID {self.tool} already exists"
            else:
                self.message = "Tool ID cannot be empty"
        if self.code == 0:
            self.code = ERROR_DUPLICATE_TOOL
        super().__post_init__()


# =============================================================================
# Not Found Errors
# =============================================================================


@dataclass
class NotFoundError(PluginToolsError):
    """Base class for unknown identities."""

    kind = "not_found"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_NOT_FOUND


@dataclass
class ToolNotFoundError(NotFoundError):
    """Raised when a tool is not registered."""

    tool: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool with ID {self.tool} not found"
        if self.code == 0:
            self.code = ERROR_TOOL_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "List available tools with GET /api/v1/tools"
        super().__post_init__()
        self.context["tool"] = self.tool


@dataclass
class TaskNotFoundError(NotFoundError):
    """Raised when a task id is not present in the store."""

    task_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Task not found: {self.task_id}"
        if self.code == 0:
            self.code = ERROR_TASK_NOT_FOUND
        super().__post_init__()
        self.context["task_id"] = self.task_id


# =============================================================================
# Permission Errors
# =============================================================================


@dataclass
class PermissionDeniedError(PluginToolsError):
    """
    Raised when an action is blocked by an allow-list.

    Attributes:
        reason: Why the policy denied this action
        rule: Which policy rule caused the denial
    """

    reason: str = ""
    rule: str | None = None

    kind = "permission"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Permission denied: {self.reason}"
        if self.code == 0:
            self.code = ERROR_PERMISSION_DENIED
        self.context.update({
            "reason": self.reason,
            "rule": self.rule,
        })


@dataclass
class CommandNotAllowedError(PermissionDeniedError):
    """Raised when a command's program name is not allow-listed."""

    command: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Command not allowed: {self.command}"
        if self.code == 0:
            self.code = ERROR_COMMAND_NOT_ALLOWED
        if not self.suggestion:
            self.suggestion = "Add the program to tools.shell_executor.allowed_commands"
        super().__post_init__()
        self.context["command"] = self.command


@dataclass
class PathNotAllowedError(PermissionDeniedError):
    """Raised when a path resolves outside every allowed root."""

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Access to path {self.path} is not allowed"
        if self.code == 0:
            self.code = ERROR_PATH_NOT_ALLOWED
        if not self.suggestion:
            self.suggestion = "Add a parent directory to tools.file_manager.allowed_paths"
        super().__post_init__()
        self.context["path"] = self.path


# =============================================================================
# Capacity Errors
# =============================================================================


@dataclass
class CapacityError(PluginToolsError):
    """
    Raised when a configured ceiling is reached.

    Attributes:
        limit: The configured ceiling
    """

    limit: int = 0

    kind = "capacity"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_CAPACITY
        self.context["limit"] = self.limit


@dataclass
class CapacityExceededError(CapacityError):
    """Raised when the task store is full."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Maximum number of tasks ({self.limit}) reached"
        if self.code == 0:
            self.code = ERROR_CAPACITY_EXCEEDED
        if not self.suggestion:
            self.suggestion = "Delete finished tasks or raise tools.scheduler.max_tasks"
        super().__post_init__()


@dataclass
class TimeoutExceedsLimitError(CapacityError):
    """Raised when a requested timeout is above the configured maximum."""

    requested: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Timeout {self.requested}s exceeds maximum allowed value "
                f"of {self.limit} seconds"
            )
        if self.code == 0:
            self.code = ERROR_TIMEOUT_EXCEEDS_LIMIT
        super().__post_init__()
        self.context["requested"] = self.requested


@dataclass
class FileTooLargeError(CapacityError):
    """Raised when a copy source is larger than the configured ceiling."""

    path: str = ""
    actual_size: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"File size {self.actual_size} exceeds maximum allowed size "
                f"of {self.limit} bytes"
            )
        if self.code == 0:
            self.code = ERROR_FILE_TOO_LARGE
        super().__post_init__()
        self.context.update({
            "path": self.path,
            "actual_size": self.actual_size,
        })


# =============================================================================
# Timeout Errors
# =============================================================================


@dataclass
class ToolTimeoutError(PluginToolsError):
    """Base class for deadline failures."""

    timeout_seconds: int = 0

    kind = "timeout"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_TIMEOUT
        self.context["timeout_seconds"] = self.timeout_seconds


@dataclass
class ExecutionTimeoutError(ToolTimeoutError):
    """Raised when a process is killed because its deadline passed."""

    command: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Command timed out after {self.timeout_seconds} seconds"
        if self.code == 0:
            self.code = ERROR_EXECUTION_TIMEOUT
        if not self.suggestion:
            self.suggestion = "Increase the timeout parameter (up to max_timeout)"
        super().__post_init__()
        self.context["command"] = self.command


# =============================================================================
# Execution Errors
# =============================================================================


@dataclass
class ExecutionError(PluginToolsError):
    """
    Base class for spawn, I/O and termination failures.

    Attributes:
        underlying_error: Text of the OS-level error
    """

    underlying_error: str = ""

    kind = "execution"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_EXECUTION
        self.context["underlying_error"] = self.underlying_error


@dataclass
class SpawnFailedError(ExecutionError):
    """Raised when the OS refuses to start a process."""

    command: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to start command {self.command}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_SPAWN_FAILED
        super().__post_init__()
        self.context["command"] = self.command


@dataclass
class TerminationFailedError(ExecutionError):
    """Raised when a timed-out process could not be killed."""

    pid: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to kill process {self.pid}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_TERMINATION_FAILED
        super().__post_init__()
        self.context["pid"] = self.pid


@dataclass
class FileOperationError(ExecutionError):
    """Raised when a filesystem operation fails at the OS level."""

    operation: str = ""
    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"File {self.operation} failed for {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_FILE_OPERATION
        super().__post_init__()
        self.context.update({
            "operation": self.operation,
            "path": self.path,
        })


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigError(PluginToolsError):
    """Raised when the configuration file cannot be read or validated."""

    config_path: str = ""

    kind = "config"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration: {self.config_path}"
        if self.code == 0:
            self.code = ERROR_CONFIG
        self.context["config_path"] = self.config_path

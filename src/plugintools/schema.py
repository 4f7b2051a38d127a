"""
Schema definitions for plugintools.

This module defines the Pydantic models used throughout plugintools:
- ToolDescriptor/ParameterSpec: What every tool exposes about itself
- Task/TaskStatus/TaskEvent: Records owned by the scheduler tool
- ProcessExecutionResult: Outcome of one shell-executor invocation
- Config and its sections: The read-only process configuration

Design Decisions:
    - Descriptor and configuration models are immutable (frozen=True)
    - Unknown configuration keys are rejected (extra="forbid")
    - Configuration is loaded once at startup and injected into tools
"""

from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from plugintools.errors import ConfigError


# =============================================================================
# Enums
# =============================================================================


class ParamType(str, Enum):
    """Type tags a parameter can declare."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class TaskStatus(str, Enum):
    """Lifecycle status of a scheduled task."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskEventType(str, Enum):
    """Mutation events published by the scheduler tool."""

    CREATED = "task_created"
    UPDATED = "task_updated"
    DELETED = "task_deleted"


# =============================================================================
# Tool Descriptor Models
# =============================================================================


class ToolDescriptor(BaseModel):
    """
    Immutable metadata describing a tool.

    Attributes:
        id: Globally unique tool identity (e.g., "shell-executor")
        name: Human-readable display name
        description: What the tool does
        version: Tool version string
        category: Free-form category tag (e.g., "System")
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Unique tool identity")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="What the tool does")
    version: str = Field(default="1.0.0", description="Tool version")
    category: str = Field(default="General", description="Category tag")


class ParameterSpec(BaseModel):
    """
    Declaration of one parameter a tool accepts.

    Attributes:
        name: Parameter name, unique within the tool
        type: Declared type tag
        required: Whether dispatch rejects requests that omit it
        default: Value substituted when an optional parameter is omitted
        description: Human-readable description
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Parameter name")
    type: ParamType = Field(default=ParamType.STRING, description="Type tag")
    required: bool = Field(default=False, description="Whether the parameter is required")
    default: Any | None = Field(default=None, description="Default value")
    description: str = Field(default="", description="Parameter description")


# =============================================================================
# Task Models
# =============================================================================


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class Task(BaseModel):
    """
    A schedulable record owned by the scheduler tool.

    Only the owning store mutates a Task; callers always receive copies.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., description="Opaque task identity")
    title: str = Field(..., min_length=1, description="Task title")
    description: str = Field(default="", description="Task description")
    due_time: datetime | None = Field(default=None, description="When the task is due")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Lifecycle status")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class TaskEvent(BaseModel):
    """Notification payload for a task mutation."""

    model_config = ConfigDict(frozen=True)

    event: TaskEventType
    task: Task
    emitted_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Process Execution Models
# =============================================================================


class ProcessExecutionResult(BaseModel):
    """Outcome of a completed shell-executor invocation."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    success: bool
    truncated: bool = False


# =============================================================================
# Policy Models
# =============================================================================


class PolicyDecision(BaseModel):
    """
    Result of checking an argument against an allow-list or ceiling.

    Attributes:
        allowed: Whether the action is permitted
        reason: Human-readable explanation of the decision
        rule_matched: Which policy rule caused this decision
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool = Field(..., description="Whether the action is permitted")
    reason: str = Field(..., description="Human-readable explanation")
    rule_matched: str | None = Field(default=None, description="Rule that decided")

    @classmethod
    def allow(cls, reason: str, rule: str | None = None) -> "PolicyDecision":
        """Create an ALLOW decision."""
        return cls(allowed=True, reason=reason, rule_matched=rule)

    @classmethod
    def deny(cls, reason: str, rule: str | None = None) -> "PolicyDecision":
        """Create a DENY decision."""
        return cls(allowed=False, reason=reason, rule_matched=rule)


# =============================================================================
# Configuration Models
# =============================================================================


class ServerConfig(BaseModel):
    """HTTP bind address and connection timeouts."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=8080, ge=0, le=65535, description="Bind port")
    keep_alive_timeout: int = Field(
        default=5, gt=0, description="Idle keep-alive connection timeout (s)"
    )
    shutdown_timeout: int = Field(
        default=30, gt=0, description="Grace period for in-flight requests on shutdown (s)"
    )


class SecurityConfig(BaseModel):
    """API key authentication for the HTTP boundary."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enable_auth: bool = Field(default=False, description="Require X-API-Key")
    api_keys: list[str] = Field(default_factory=list, description="Accepted API keys")


class FileManagerConfig(BaseModel):
    """
    Limits for the file-manager tool.

    Attributes:
        allowed_paths: Directory roots every path argument must resolve under
        max_file_size: Largest file (bytes) a copy may read
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed_paths: list[str] = Field(
        default_factory=list,
        description="Allow-listed directory roots",
    )
    max_file_size: int = Field(
        default=10 * 1024 * 1024,  # 10 MB
        ge=0,
        description="Maximum copy source size in bytes",
    )


class ShellExecutorConfig(BaseModel):
    """
    Limits for the shell-executor tool.

    Attributes:
        allowed_commands: Program names that may be executed
        max_timeout: Largest timeout (seconds) a caller may request
        max_output_bytes: Ceiling on combined captured stdout/stderr
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed_commands: list[str] = Field(
        default_factory=list,
        description="Allow-listed program names",
    )
    max_timeout: int = Field(
        default=300,
        gt=0,
        description="Maximum timeout in seconds",
    )
    max_output_bytes: int = Field(
        default=1024 * 1024,  # 1 MB
        gt=0,
        description="Maximum combined stdout/stderr size",
    )


class SchedulerConfig(BaseModel):
    """
    Limits and notification settings for the scheduler tool.

    Attributes:
        max_tasks: Ceiling on live tasks
        enable_notifications: Publish task events to the notifier
        notification_queue_size: Bound of the notifier hand-off queue
        notification_webhook_url: Optional URL receiving events as JSON POSTs
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_tasks: int = Field(default=1000, ge=0, description="Maximum live tasks")
    enable_notifications: bool = Field(default=False, description="Publish task events")
    notification_queue_size: int = Field(
        default=100,
        gt=0,
        description="Bound of the notification queue",
    )
    notification_webhook_url: str | None = Field(
        default=None,
        description="Webhook receiving task events",
    )


class ToolsConfig(BaseModel):
    """Container for all tool-specific configuration sections."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    file_manager: FileManagerConfig = Field(default_factory=FileManagerConfig)
    shell_executor: ShellExecutorConfig = Field(default_factory=ShellExecutorConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)


class LoggingConfig(BaseModel):
    """Logging level for the process."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = Field(default="INFO", description="Root log level name")


class Config(BaseModel):
    """
    Complete process configuration.

    Loaded once before any tool executes and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    server: ServerConfig = Field(default_factory=ServerConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Loading Helpers
# =============================================================================


def load_config(path: Path | str) -> Config:
    """
    Load the configuration from a YAML or JSON file.

    JSON is a subset of YAML, so both formats go through yaml.safe_load.

    Args:
        path: Path to the configuration file

    Returns:
        Validated Config object

    Raises:
        ConfigError: If the file can't be read, parsed or validated
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            message=f"Cannot read configuration {path}: {e}",
            config_path=str(path),
        ) from e

    return load_config_from_string(content, source=str(path))


def load_config_from_string(content: str, source: str = "<string>") -> Config:
    """Load the configuration from a YAML or JSON string."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            message=f"Cannot parse configuration {source}: {e}",
            config_path=source,
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            message=f"Configuration {source} must be a mapping",
            config_path=source,
        )

    try:
        return Config.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(
            message=f"Invalid configuration {source}: {e}",
            config_path=source,
        ) from e

"""
Base classes for the tool interface.

This module defines the core abstractions for tools in plugintools:
- Tool: Abstract base class that all tools must implement
- ToolContext: Per-invocation context passed to tools during execution
- ToolOutput: Standardized result format from tool execution

Design Principles:
    - Tools describe themselves: a descriptor plus an ordered parameter schema
    - Tools receive typed parameters - dispatch validates them before execution
    - Tools raise PluginToolsError subclasses for expected failures;
      dispatch turns those into failed ToolOutputs
    - Tools receive their configuration section at construction and never
      mutate it
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from plugintools.errors import PluginToolsError
from plugintools.schema import ParameterSpec, ToolDescriptor


@dataclass(frozen=True)
class ToolOutput:
    """
    Standardized output from tool execution.

    Every dispatch returns a ToolOutput, whether successful or failed.

    Attributes:
        success: Whether the tool executed successfully
        data: The output data from the tool (type varies by tool)
        error: Error message if success is False
        failure: The typed error behind a failed output
        metadata: Additional metadata about the execution
    """

    success: bool
    data: Any = None
    error: str | None = None
    failure: PluginToolsError | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any, **metadata: Any) -> "ToolOutput":
        """Create a successful output."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> "ToolOutput":
        """Create a failed output without a typed error."""
        return cls(success=False, error=error, metadata=metadata)

    @classmethod
    def from_error(cls, failure: PluginToolsError, **metadata: Any) -> "ToolOutput":
        """Create a failed output carrying a typed error."""
        return cls(
            success=False,
            error=failure.message,
            failure=failure,
            metadata=metadata,
        )


@dataclass
class ToolContext:
    """
    Per-invocation context passed to tools during execution.

    Attributes:
        request_id: Identifier used to correlate log lines of one invocation
        metadata: Additional context-specific metadata
    """

    request_id: str = "-"
    metadata: dict[str, Any] = field(default_factory=dict)


class Tool(ABC):
    """
    Abstract base class for all plugintools tools.

    Each tool:
    - Exposes an immutable ToolDescriptor with a unique id
    - Declares an ordered sequence of ParameterSpecs
    - Implements execute(), returning a ToolOutput

    Example:
        class EchoTool(Tool):
            descriptor = ToolDescriptor(id="echo", name="Echo")
            parameters = (ParameterSpec(name="message", required=True),)

            def execute(self, params, context):
                return ToolOutput.ok(params["message"])
    """

    @property
    @abstractmethod
    def descriptor(self) -> ToolDescriptor:
        """The tool's immutable metadata."""
        ...

    @property
    @abstractmethod
    def parameters(self) -> Sequence[ParameterSpec]:
        """The ordered parameter schema, fixed per tool class."""
        ...

    @property
    def id(self) -> str:
        """Shortcut for descriptor.id."""
        return self.descriptor.id

    @abstractmethod
    def execute(self, params: dict[str, Any], context: ToolContext) -> ToolOutput:
        """
        Execute the tool with already-validated parameters.

        Args:
            params: Typed parameter bag (declared parameters converted,
                    unknown keys passed through untouched)
            context: Per-invocation context

        Returns:
            ToolOutput with data on success

        Raises:
            PluginToolsError: For expected failures (dispatch converts them)
        """
        ...

    def __repr__(self) -> str:
        """String representation of the tool."""
        return f"<Tool: {self.id}>"

"""
Tools module for plugintools.

This module provides the tool interface, the registry, the dispatch
protocol and the built-in tools.

Built-in tools:
    - file-manager: List, copy, move and delete files under allowed roots
    - shell-executor: Run allow-listed commands with a deadline
    - scheduler: In-memory task store with change notifications

Architecture:
    - Tool: Abstract base class defining the tool interface
    - ToolRegistry: Concurrent-safe catalog for looking up tools by id
    - dispatch(): Validate-then-invoke procedure applied to every call
    - ToolContext: Per-invocation context passed to tools
    - ToolOutput: Standardized result format from tool execution

Each tool receives its configuration section at construction, so a
registry built from one Config never reads global state.
"""

import logging

from plugintools.schema import Config
from plugintools.tools.base import Tool, ToolContext, ToolOutput
from plugintools.tools.dispatch import coerce_value, dispatch, validate_params
from plugintools.tools.fs import FileManagerTool
from plugintools.tools.registry import ToolRegistry
from plugintools.tools.scheduler import SchedulerTool
from plugintools.tools.shell import ShellExecutorTool

logger = logging.getLogger(__name__)


def builtin_tools(config: Config) -> list[Tool]:
    """Instantiate every built-in tool from its configuration section."""
    return [
        FileManagerTool(config.tools.file_manager),
        ShellExecutorTool(config.tools.shell_executor),
        SchedulerTool(config.tools.scheduler),
    ]


def register_builtin_tools(registry: ToolRegistry, config: Config) -> None:
    """
    Register all built-in tools in a registry.

    Raises:
        DuplicateToolError: If one of the ids is already registered
    """
    for tool in builtin_tools(config):
        registry.register(tool)
        logger.info("Registered tool: %s", tool.descriptor.name)


def build_registry(config: Config) -> ToolRegistry:
    """Create a registry holding the built-in tools."""
    registry = ToolRegistry()
    register_builtin_tools(registry, config)
    return registry


def close_tools(registry: ToolRegistry) -> None:
    """Release background resources held by registered tools."""
    for tool in registry.list_tools():
        close = getattr(tool, "close", None)
        if callable(close):
            close()


__all__ = [
    "Tool",
    "ToolContext",
    "ToolOutput",
    "ToolRegistry",
    "FileManagerTool",
    "SchedulerTool",
    "ShellExecutorTool",
    "build_registry",
    "builtin_tools",
    "close_tools",
    "coerce_value",
    "dispatch",
    "register_builtin_tools",
    "validate_params",
]

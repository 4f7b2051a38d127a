"""
Tool registry for plugintools.

The registry is the catalog of every tool known to the process.
It is created empty at startup, filled by sequential register() calls,
and read concurrently by request workers for the rest of the process.

Design:
    - One registry per process, passed explicitly (no module-level global)
    - Register/unregister take exclusive access, lookups take shared access
    - Duplicate identities are rejected without mutating state
    - Enumeration returns a snapshot in unspecified order

Usage:
    from plugintools.tools.registry import ToolRegistry

    registry = ToolRegistry()
    registry.register(MyTool())
    tool = registry.get("my-tool")
"""

import logging
from collections.abc import Iterator

from plugintools.concurrency import RWLock
from plugintools.errors import DuplicateToolError, ToolNotFoundError
from plugintools.schema import ToolDescriptor
from plugintools.tools.base import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Concurrent-safe mapping from tool identity to tool instance.

    Attributes:
        _tools: Internal mapping of tool ids to tool instances
        _lock: Reader/writer lock guarding _tools
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, Tool] = {}
        self._lock = RWLock()

    def register(self, tool: Tool) -> None:
        """
        Register a tool in the registry.

        Args:
            tool: The tool instance to register

        Raises:
            ValueError: If tool is None
            DuplicateToolError: If the tool id is empty or already registered
        """
        if tool is None:
            msg = "Cannot register None as a tool"
            raise ValueError(msg)

        tool_id = tool.descriptor.id
        if not tool_id:
            raise DuplicateToolError()

        with self._lock.write():
            if tool_id in self._tools:
                raise DuplicateToolError(tool=tool_id)
            self._tools[tool_id] = tool

        logger.debug("Registered tool: %s", tool_id)

    def get(self, tool_id: str) -> Tool:
        """
        Look up a tool by id.

        Args:
            tool_id: The tool's unique identifier

        Returns:
            The registered tool instance (shared, treat as read-only)

        Raises:
            ToolNotFoundError: If no tool with that id is registered
        """
        with self._lock.read():
            tool = self._tools.get(tool_id)
        if tool is None:
            raise ToolNotFoundError(tool=tool_id)
        return tool

    def get_optional(self, tool_id: str) -> Tool | None:
        """Look up a tool by id, returning None if not found."""
        with self._lock.read():
            return self._tools.get(tool_id)

    def has(self, tool_id: str) -> bool:
        """Check if a tool is registered."""
        with self._lock.read():
            return tool_id in self._tools

    def unregister(self, tool_id: str) -> None:
        """
        Remove a tool from the registry.

        Args:
            tool_id: The tool's unique identifier

        Raises:
            ToolNotFoundError: If no tool with that id is registered
        """
        with self._lock.write():
            if tool_id not in self._tools:
                raise ToolNotFoundError(tool=tool_id)
            del self._tools[tool_id]

        logger.debug("Unregistered tool: %s", tool_id)

    def list_tools(self) -> list[Tool]:
        """
        Snapshot of all registered tools.

        Registrations made after the snapshot is taken are not reflected.

        Returns:
            List of tools in unspecified order
        """
        with self._lock.read():
            return list(self._tools.values())

    def descriptors(self) -> list[ToolDescriptor]:
        """Snapshot of the descriptors of all registered tools."""
        return [tool.descriptor for tool in self.list_tools()]

    def __len__(self) -> int:
        """Return the number of registered tools."""
        with self._lock.read():
            return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        """Iterate over a snapshot of the registered tools."""
        return iter(self.list_tools())

    def __contains__(self, tool_id: object) -> bool:
        """Check if a tool is registered using 'in' operator."""
        with self._lock.read():
            return tool_id in self._tools

    def __repr__(self) -> str:
        """String representation of the registry."""
        tools = ", ".join(sorted(tool.id for tool in self.list_tools()))
        return f"<ToolRegistry: [{tools}]>"

"""
Filesystem tool for plugintools.

This module provides the file-manager tool:
- list: List directory contents
- copy: Copy a file or a directory tree
- move: Move/rename a file or directory
- delete: Remove a file or a directory tree

Security Note:
    Every path (source and destination) goes through PathPolicy before
    any filesystem call: it is resolved and must lie inside one of the
    allowed_paths roots. Copy sources larger than max_file_size are
    rejected.

    The tool still handles OS-level failures (missing files, permissions)
    by raising FileOperationError.
"""

import shutil
import stat
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from plugintools.errors import (
    FileOperationError,
    InvalidParameterError,
    MissingParameterError,
)
from plugintools.policy import PathPolicy
from plugintools.schema import FileManagerConfig, ParameterSpec, ParamType, ToolDescriptor
from plugintools.tools.base import Tool, ToolContext, ToolOutput

OPERATIONS = ("list", "copy", "move", "delete")


class FileManagerTool(Tool):
    """
    File system operations confined to allow-listed roots.

    Arguments:
        operation (str): list, copy, move or delete (required)
        path (str): File or directory path (required)
        destination (str): Destination path for copy/move

    Returns:
        list: List of entry dicts (name, size, mode, mod_time, is_dir)
        copy/move/delete: Confirmation dict with the resolved paths

    Example:
        tool = FileManagerTool(FileManagerConfig(allowed_paths=["/srv/data"]))
        entries = tool.list_dir("/srv/data")
    """

    descriptor = ToolDescriptor(
        id="file-manager",
        name="File Manager",
        description="Provides file system operations like list, copy, move, delete",
        version="1.0.0",
        category="System",
    )

    parameters = (
        ParameterSpec(
            name="operation",
            type=ParamType.STRING,
            required=True,
            description="Operation to perform (list, copy, move, delete)",
        ),
        ParameterSpec(
            name="path",
            type=ParamType.STRING,
            required=True,
            description="File or directory path",
        ),
        ParameterSpec(
            name="destination",
            type=ParamType.STRING,
            description="Destination path for copy/move operations",
        ),
    )

    def __init__(self, config: FileManagerConfig) -> None:
        self.config = config
        self.policy = PathPolicy(config)

    def execute(self, params: dict[str, Any], context: ToolContext) -> ToolOutput:
        operation = params["operation"]
        if operation not in OPERATIONS:
            raise InvalidParameterError(
                tool=self.id,
                parameter="operation",
                reason=f"unsupported operation: {operation}",
            )

        path = params["path"]

        if operation == "list":
            return ToolOutput.ok(self.list_dir(path), operation=operation)
        if operation == "delete":
            return ToolOutput.ok(self.delete(path), operation=operation)

        destination = params.get("destination")
        if not destination:
            raise MissingParameterError(
                tool=self.id,
                parameter="destination",
                message="destination parameter is required for copy/move operations",
            )
        if operation == "copy":
            return ToolOutput.ok(self.copy(path, destination), operation=operation)
        return ToolOutput.ok(self.move(path, destination), operation=operation)

    # =========================================================================
    # Operations
    # =========================================================================

    def list_dir(self, path: str) -> list[dict[str, Any]]:
        """List a directory. Entries that vanish while listing are skipped."""
        resolved = self.policy.require_path(path)
        try:
            children = sorted(resolved.iterdir())
        except OSError as e:
            raise FileOperationError(
                operation="list",
                path=str(resolved),
                underlying_error=str(e),
            ) from e

        entries = []
        for child in children:
            try:
                info = child.lstat()
            except OSError:
                continue
            entries.append({
                "name": child.name,
                "size": info.st_size,
                "mode": _format_mode(info.st_mode),
                "mod_time": datetime.fromtimestamp(info.st_mtime, UTC).isoformat(),
                "is_dir": child.is_dir(),
            })
        return entries

    def copy(self, path: str, destination: str) -> dict[str, Any]:
        """
        Copy a file, or a directory tree, to destination.

        The size ceiling applies to a file source; directory trees are
        copied file by file with the same ceiling. Symlinks inside a tree
        are followed only when their target resolves under an allowed root.
        """
        source = self.policy.require_path(path)
        target = self.policy.require_path(destination)

        try:
            if source.is_dir():
                shutil.copytree(source, target, copy_function=self._copy_file, dirs_exist_ok=True)
            else:
                self._copy_file(source, target)
        except (OSError, shutil.Error) as e:
            raise FileOperationError(
                operation="copy",
                path=str(source),
                underlying_error=str(e),
            ) from e

        return {
            "success": True,
            "message": f"Copied {source} to {target}",
            "source": str(source),
            "destination": str(target),
        }

    def move(self, path: str, destination: str) -> dict[str, Any]:
        """Move or rename a file or directory."""
        source = self.policy.require_path(path)
        target = self.policy.require_path(destination)

        try:
            shutil.move(source, target)
        except (OSError, shutil.Error) as e:
            raise FileOperationError(
                operation="move",
                path=str(source),
                underlying_error=str(e),
            ) from e

        return {
            "success": True,
            "message": f"Moved {source} to {target}",
            "source": str(source),
            "destination": str(target),
        }

    def delete(self, path: str) -> dict[str, Any]:
        """Remove a file or a directory tree. A missing path is not an error."""
        target = self.policy.require_path(path)

        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink(missing_ok=True)
        except OSError as e:
            raise FileOperationError(
                operation="delete",
                path=str(target),
                underlying_error=str(e),
            ) from e

        return {
            "success": True,
            "message": f"Deleted {target}",
            "path": str(target),
        }

    def _copy_file(self, src: str | Path, dst: str | Path) -> str:
        # copytree follows symlinks inside the tree; each file must resolve under a root
        src_path = self.policy.require_path(src)
        self.policy.require_file_size(src_path, src_path.stat().st_size)
        return shutil.copy2(src_path, dst)


def _format_mode(mode: int) -> str:
    """Render st_mode like ls -l (e.g. "-rw-r--r--")."""
    return stat.filemode(mode)

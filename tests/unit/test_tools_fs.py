"""
Unit tests for the file-manager tool.

Tests cover:
- list/copy/move/delete operations
- Size ceiling on copy sources
- Operation routing through dispatch
- Error handling for OS-level failures
"""

from pathlib import Path

import pytest

from plugintools.errors import (
    FileOperationError,
    FileTooLargeError,
    InvalidParameterError,
    MissingParameterError,
    PathNotAllowedError,
)
from plugintools.schema import FileManagerConfig
from plugintools.tools.dispatch import dispatch
from plugintools.tools.fs import FileManagerTool


@pytest.fixture
def tool(temp_dir: Path) -> FileManagerTool:
    return FileManagerTool(FileManagerConfig(allowed_paths=[str(temp_dir)], max_file_size=1024))


class TestFileList:
    """Tests for the list operation."""

    def test_list(self, tool: FileManagerTool, temp_dir: Path) -> None:
        (temp_dir / "b.txt").write_text("hello")
        (temp_dir / "a_dir").mkdir()

        entries = tool.list_dir(str(temp_dir))

        assert [e["name"] for e in entries] == ["a_dir", "b.txt"]
        directory, file = entries
        assert directory["is_dir"] is True
        assert directory["mode"].startswith("d")
        assert file["is_dir"] is False
        assert file["size"] == 5
        assert file["mode"].startswith("-")
        assert file["mod_time"].endswith("+00:00")

    def test_list_empty(self, tool: FileManagerTool, temp_dir: Path) -> None:
        assert tool.list_dir(str(temp_dir)) == []

    def test_list_missing(self, tool: FileManagerTool, temp_dir: Path) -> None:
        with pytest.raises(FileOperationError) as exc_info:
            tool.list_dir(str(temp_dir / "missing"))
        assert exc_info.value.context["operation"] == "list"

    def test_list_outside_root(self, tool: FileManagerTool) -> None:
        with pytest.raises(PathNotAllowedError):
            tool.list_dir("/etc")


class TestFileCopy:
    """Tests for the copy operation."""

    def test_copy_file(self, tool: FileManagerTool, temp_dir: Path) -> None:
        src = temp_dir / "src.txt"
        src.write_text("data")

        result = tool.copy(str(src), str(temp_dir / "dst.txt"))

        assert result["success"] is True
        assert (temp_dir / "dst.txt").read_text() == "data"
        assert src.exists()

    def test_copy_directory(self, tool: FileManagerTool, temp_dir: Path) -> None:
        src = temp_dir / "tree"
        (src / "nested").mkdir(parents=True)
        (src / "nested" / "f.txt").write_text("x")

        tool.copy(str(src), str(temp_dir / "copy"))

        assert (temp_dir / "copy" / "nested" / "f.txt").read_text() == "x"

    def test_copy_too_large(self, tool: FileManagerTool, temp_dir: Path) -> None:
        src = temp_dir / "big.bin"
        src.write_bytes(b"\0" * 2048)

        with pytest.raises(FileTooLargeError) as exc_info:
            tool.copy(str(src), str(temp_dir / "big-copy.bin"))

        assert exc_info.value.context["actual_size"] == 2048
        assert not (temp_dir / "big-copy.bin").exists()

    def test_copy_at_limit(self, tool: FileManagerTool, temp_dir: Path) -> None:
        src = temp_dir / "exact.bin"
        src.write_bytes(b"\0" * 1024)
        tool.copy(str(src), str(temp_dir / "exact-copy.bin"))
        assert (temp_dir / "exact-copy.bin").stat().st_size == 1024

    def test_copy_missing_source(self, tool: FileManagerTool, temp_dir: Path) -> None:
        with pytest.raises(FileOperationError):
            tool.copy(str(temp_dir / "missing"), str(temp_dir / "dst"))

    def test_copy_destination_outside(self, tool: FileManagerTool, temp_dir: Path) -> None:
        src = temp_dir / "src.txt"
        src.write_text("data")
        with pytest.raises(PathNotAllowedError):
            tool.copy(str(src), "/tmp/../etc/plugintools-copy")


class TestFileMove:
    """Tests for the move operation."""

    def test_move(self, tool: FileManagerTool, temp_dir: Path) -> None:
        src = temp_dir / "old.txt"
        src.write_text("data")

        result = tool.move(str(src), str(temp_dir / "new.txt"))

        assert result["destination"] == str(temp_dir / "new.txt")
        assert not src.exists()
        assert (temp_dir / "new.txt").read_text() == "data"

    def test_move_missing(self, tool: FileManagerTool, temp_dir: Path) -> None:
        with pytest.raises(FileOperationError):
            tool.move(str(temp_dir / "missing"), str(temp_dir / "new"))


class TestFileDelete:
    """Tests for the delete operation."""

    def test_delete_file(self, tool: FileManagerTool, temp_dir: Path) -> None:
        target = temp_dir / "f.txt"
        target.write_text("x")
        tool.delete(str(target))
        assert not target.exists()

    def test_delete_tree(self, tool: FileManagerTool, temp_dir: Path) -> None:
        target = temp_dir / "tree"
        (target / "nested").mkdir(parents=True)
        (target / "nested" / "f.txt").write_text("x")
        tool.delete(str(target))
        assert not target.exists()

    def test_delete_missing_is_ok(self, tool: FileManagerTool, temp_dir: Path) -> None:
        result = tool.delete(str(temp_dir / "missing"))
        assert result["success"] is True


class TestFileExecute:
    """Tests for execute() through dispatch."""

    def test_list(self, tool: FileManagerTool, temp_dir: Path) -> None:
        (temp_dir / "f.txt").write_text("x")
        output = dispatch(tool, {"operation": "list", "path": str(temp_dir)})
        assert output.success is True
        assert output.metadata["operation"] == "list"
        assert output.data[0]["name"] == "f.txt"

    def test_copy_requires_destination(self, tool: FileManagerTool, temp_dir: Path) -> None:
        output = dispatch(tool, {"operation": "copy", "path": str(temp_dir)})
        assert isinstance(output.failure, MissingParameterError)
        assert output.failure.context["parameter"] == "destination"

    def test_unknown_operation(self, tool: FileManagerTool, temp_dir: Path) -> None:
        output = dispatch(tool, {"operation": "chmod", "path": str(temp_dir)})
        assert isinstance(output.failure, InvalidParameterError)

    def test_path_required(self, tool: FileManagerTool) -> None:
        output = dispatch(tool, {"operation": "list"})
        assert isinstance(output.failure, MissingParameterError)
        assert output.failure.context["parameter"] == "path"

    def test_move_through_dispatch(self, tool: FileManagerTool, temp_dir: Path) -> None:
        (temp_dir / "a").write_text("x")
        output = dispatch(
            tool,
            {"operation": "move", "path": str(temp_dir / "a"), "destination": str(temp_dir / "b")},
        )
        assert output.success is True
        assert (temp_dir / "b").exists()

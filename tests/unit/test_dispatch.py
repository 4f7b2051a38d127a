"""
Unit tests for the dispatch protocol.

Tests cover:
- Value coercion per ParamType
- Required/default/extra parameter handling
- Conversion of typed failures into ToolOutputs
"""

from typing import Any

import pytest

from plugintools.errors import (
    InvalidParameterError,
    MissingParameterError,
    TaskNotFoundError,
)
from plugintools.schema import ParameterSpec, ParamType, ToolDescriptor
from plugintools.tools.base import Tool, ToolContext, ToolOutput
from plugintools.tools.dispatch import coerce_value, dispatch, validate_params


class RecordingTool(Tool):
    """Tool that records the params it was executed with."""

    descriptor = ToolDescriptor(id="recorder", name="Recorder")
    parameters = (
        ParameterSpec(name="name", type=ParamType.STRING, required=True),
        ParameterSpec(name="count", type=ParamType.INTEGER, default=3),
        ParameterSpec(name="verbose", type=ParamType.BOOLEAN),
    )

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def execute(self, params: dict[str, Any], context: ToolContext) -> ToolOutput:
        self.calls.append(params)
        return ToolOutput.ok(params)


class FailingTool(RecordingTool):
    """Tool that always raises a typed error."""

    def execute(self, params: dict[str, Any], context: ToolContext) -> ToolOutput:
        raise TaskNotFoundError(task_id="task_1")


def spec(kind: ParamType) -> ParameterSpec:
    return ParameterSpec(name="p", type=kind)


class TestCoerceValue:
    """Tests for coerce_value."""

    @pytest.mark.parametrize(
        ("kind", "raw", "expected"),
        [
            (ParamType.STRING, "hello", "hello"),
            (ParamType.INTEGER, 5, 5),
            (ParamType.INTEGER, 5.0, 5),
            (ParamType.INTEGER, "42", 42),
            (ParamType.INTEGER, "3.0", 3),
            (ParamType.NUMBER, 2, 2),
            (ParamType.NUMBER, "2.5", 2.5),
            (ParamType.BOOLEAN, True, True),
            (ParamType.BOOLEAN, "yes", True),
            (ParamType.BOOLEAN, "OFF", False),
            (ParamType.ARRAY, ("a", "b"), ["a", "b"]),
            (ParamType.OBJECT, {"k": 1}, {"k": 1}),
        ],
    )
    def test_accepts(self, kind: ParamType, raw: Any, expected: Any) -> None:
        assert coerce_value(spec(kind), raw) == expected

    @pytest.mark.parametrize(
        ("kind", "raw"),
        [
            (ParamType.STRING, 5),
            (ParamType.INTEGER, True),
            (ParamType.INTEGER, "five"),
            (ParamType.INTEGER, float("nan")),
            (ParamType.INTEGER, 1.5),
            (ParamType.INTEGER, "1.5"),
            (ParamType.NUMBER, False),
            (ParamType.NUMBER, "many"),
            (ParamType.BOOLEAN, "maybe"),
            (ParamType.BOOLEAN, 1),
            (ParamType.ARRAY, "a,b"),
            (ParamType.OBJECT, ["k"]),
        ],
    )
    def test_rejects(self, kind: ParamType, raw: Any) -> None:
        with pytest.raises(InvalidParameterError) as exc_info:
            coerce_value(spec(kind), raw, tool="t")
        assert exc_info.value.context["parameter"] == "p"
        assert exc_info.value.context["tool"] == "t"


class TestValidateParams:
    """Tests for validate_params."""

    def test_missing_required(self) -> None:
        with pytest.raises(MissingParameterError) as exc_info:
            validate_params(RecordingTool.parameters, {}, tool="recorder")
        assert exc_info.value.context["parameter"] == "name"

    def test_none_counts_as_absent(self) -> None:
        with pytest.raises(MissingParameterError):
            validate_params(RecordingTool.parameters, {"name": None})

    def test_defaults_filled(self) -> None:
        typed = validate_params(RecordingTool.parameters, {"name": "x"})
        assert typed == {"name": "x", "count": 3}

    def test_none_optional_dropped(self) -> None:
        typed = validate_params(RecordingTool.parameters, {"name": "x", "verbose": None})
        assert "verbose" not in typed

    def test_extra_keys_pass_through(self) -> None:
        typed = validate_params(RecordingTool.parameters, {"name": "x", "extra": [1, 2]})
        assert typed["extra"] == [1, 2]

    def test_values_typed(self) -> None:
        typed = validate_params(
            RecordingTool.parameters,
            {"name": "x", "count": "7", "verbose": "true"},
        )
        assert typed["count"] == 7
        assert typed["verbose"] is True

    def test_input_not_mutated(self) -> None:
        raw = {"name": "x", "count": "7"}
        validate_params(RecordingTool.parameters, raw)
        assert raw == {"name": "x", "count": "7"}


class TestDispatch:
    """Tests for dispatch."""

    def test_success(self) -> None:
        tool = RecordingTool()
        output = dispatch(tool, {"name": "x"}, ToolContext(request_id="r1"))
        assert output.success is True
        assert tool.calls == [{"name": "x", "count": 3}]

    def test_missing_required_does_not_execute(self) -> None:
        tool = RecordingTool()
        output = dispatch(tool, {})
        assert output.success is False
        assert isinstance(output.failure, MissingParameterError)
        assert tool.calls == []

    def test_none_params(self) -> None:
        output = dispatch(RecordingTool(), None)
        assert isinstance(output.failure, MissingParameterError)

    def test_invalid_type(self) -> None:
        output = dispatch(RecordingTool(), {"name": "x", "count": "lots"})
        assert isinstance(output.failure, InvalidParameterError)
        assert output.failure.kind == "validation"

    def test_tool_error_converted(self) -> None:
        output = dispatch(FailingTool(), {"name": "x"})
        assert output.success is False
        assert isinstance(output.failure, TaskNotFoundError)
        assert output.error == "Task not found: task_1"

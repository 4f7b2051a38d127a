"""
Dispatch protocol: validate a raw parameter bag, then invoke the tool.

Every tool invocation, whatever its origin (HTTP, CLI, tests), goes through
dispatch(). It is a shallow pre-check rather than a full schema validator:

    1. Every required parameter must be present (MissingParameterError)
    2. Declared parameters are converted once to their declared ParamType
       (InvalidParameterError on values that can't be converted)
    3. Omitted optional parameters receive their declared default
    4. Unknown extra keys are passed through untouched
    5. The tool runs; typed failures come back as failed ToolOutputs

Domain interpretation (timestamps, allow-lists, operations) stays inside
each tool.
"""

import logging
import math
import time
from collections.abc import Mapping, Sequence
from typing import Any

from plugintools.errors import (
    InvalidParameterError,
    MissingParameterError,
    PluginToolsError,
)
from plugintools.schema import ParameterSpec, ParamType
from plugintools.tools.base import Tool, ToolContext, ToolOutput

logger = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def coerce_value(spec: ParameterSpec, value: Any, tool: str = "") -> Any:
    """
    Convert one raw value to the type its ParameterSpec declares.

    Args:
        spec: The parameter declaration
        value: Raw, loosely typed value (as decoded from JSON or a CLI flag)
        tool: Tool id used in error context

    Returns:
        The converted value

    Raises:
        InvalidParameterError: If the value can't be represented as spec.type
    """

    def invalid(reason: str) -> InvalidParameterError:
        return InvalidParameterError(tool=tool, parameter=spec.name, reason=reason)

    kind = spec.type

    if kind is ParamType.STRING:
        if not isinstance(value, str):
            raise invalid(f"expected string, got {type(value).__name__}")
        return value

    if kind is ParamType.INTEGER:
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool):
            raise invalid("expected integer, got bool")
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not math.isfinite(value) or not value.is_integer():
                raise invalid(f"expected integer, got {value}")
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
            try:
                number = float(value.strip())
            except ValueError:
                raise invalid(f"expected integer, got {value!r}") from None
            if not math.isfinite(number) or not number.is_integer():
                raise invalid(f"expected integer, got {value!r}")
            return int(number)
        raise invalid(f"expected integer, got {type(value).__name__}")

    if kind is ParamType.NUMBER:
        if isinstance(value, bool):
            raise invalid("expected number, got bool")
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise invalid(f"expected number, got {value!r}") from None
        raise invalid(f"expected number, got {type(value).__name__}")

    if kind is ParamType.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise invalid(f"expected boolean, got {value!r}")

    if kind is ParamType.ARRAY:
        if isinstance(value, (list, tuple)):
            return list(value)
        raise invalid(f"expected array, got {type(value).__name__}")

    if kind is ParamType.OBJECT:
        if isinstance(value, Mapping):
            return dict(value)
        raise invalid(f"expected object, got {type(value).__name__}")

    raise invalid(f"unsupported parameter type {kind}")


def validate_params(
    specs: Sequence[ParameterSpec],
    params: Mapping[str, Any],
    tool: str = "",
) -> dict[str, Any]:
    """
    Check a raw parameter bag against a tool's schema.

    A key whose value is None counts as absent.

    Args:
        specs: The tool's ordered parameter schema
        params: Raw parameter bag
        tool: Tool id used in error context

    Returns:
        A new bag: declared parameters typed, defaults filled in,
        undeclared keys copied unchanged

    Raises:
        MissingParameterError: For the first required parameter that is absent
        InvalidParameterError: For the first value of the wrong type
    """
    for spec in specs:
        if spec.required and params.get(spec.name) is None:
            raise MissingParameterError(tool=tool, parameter=spec.name)

    typed: dict[str, Any] = dict(params)
    for spec in specs:
        value = params.get(spec.name)
        if value is None:
            typed.pop(spec.name, None)
            if spec.default is not None:
                typed[spec.name] = spec.default
            continue
        typed[spec.name] = coerce_value(spec, value, tool=tool)

    return typed


def dispatch(
    tool: Tool,
    params: Mapping[str, Any] | None,
    context: ToolContext | None = None,
) -> ToolOutput:
    """
    Validate params against the tool's schema and execute the tool.

    Never raises for tool-level failures: validation errors and any
    PluginToolsError raised by the tool are returned as failed outputs.

    Args:
        tool: The tool to invoke
        params: Raw parameter bag (None is treated as empty)
        context: Per-invocation context

    Returns:
        ToolOutput from the tool, or a failed ToolOutput with a typed error
    """
    context = context or ToolContext()
    tool_id = tool.descriptor.id
    started = time.perf_counter()

    try:
        typed = validate_params(tool.parameters, params or {}, tool=tool_id)
        output = tool.execute(typed, context)
    except PluginToolsError as e:
        output = ToolOutput.from_error(e)

    elapsed_ms = (time.perf_counter() - started) * 1000
    if output.success:
        logger.info(
            "[%s] %s succeeded in %.1fms",
            context.request_id,
            tool_id,
            elapsed_ms,
        )
    else:
        logger.warning(
            "[%s] %s failed in %.1fms: %s",
            context.request_id,
            tool_id,
            elapsed_ms,
            output.error,
        )
    return output

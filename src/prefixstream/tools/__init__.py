"""Local functions that streamed tool calls may invoke."""

from __future__ import annotations

from prefixstream.tools.executor import run_tool
from prefixstream.tools.registry import (
    DEFAULT_TOOL_TIMEOUT_S,
    FunctionRegistry,
    RegisteredFunction,
    ToolHandler,
    default_registry,
)

__all__ = [
    "DEFAULT_TOOL_TIMEOUT_S",
    "FunctionRegistry",
    "RegisteredFunction",
    "ToolHandler",
    "default_registry",
    "run_tool",
]

"""Run registered functions for streamed tool calls."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Dict

from pydantic import ValidationError

from prefixstream.log_utils import log_event
from prefixstream.protocol.events import ToolCall
from prefixstream.tools.registry import DEFAULT_TOOL_TIMEOUT_S, FunctionRegistry

logger = logging.getLogger(__name__)


def _normalize(result: Any) -> Dict[str, Any]:
    if isinstance(result, dict) and "error" in result:
        normalized = dict(result)
        if normalized.get("content") is None and normalized.get("error") is None:
            normalized["content"] = ""
        return normalized
    return {"content": result, "error": None}


async def run_tool(
    registry: FunctionRegistry, call: ToolCall, *, timeout: float | None = DEFAULT_TOOL_TIMEOUT_S
) -> Dict[str, Any]:
    """Validate arguments and run ``call`` against ``registry``.

    Always returns a ``{"content": ..., "error": ...}`` dict; handler failures
    are reported in ``error`` rather than raised.
    """

    entry = registry.get(call.name)
    if entry is None:
        return {"content": None, "error": f"Unknown tool function: {call.name}"}

    kwargs: Dict[str, Any] = dict(call.arguments)
    if entry.args_model is not None:
        try:
            kwargs = entry.args_model.model_validate(kwargs).model_dump()
        except ValidationError as exc:
            log_event(
                logger,
                "tool.args.invalid",
                level=logging.WARNING,
                tool=call.name,
                tool_call_id=call.id,
                error=str(exc),
            )
            return {"content": None, "error": f"Invalid arguments: {exc}"}

    try:
        params = inspect.signature(entry.handler).parameters
    except (TypeError, ValueError):
        params = {}
    accepts_any = any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params.values())
    if params and not accepts_any:
        kwargs = {k: v for k, v in kwargs.items() if k in params}

    log_event(logger, "tool.run.start", tool=call.name, tool_call_id=call.id)
    try:
        if inspect.iscoroutinefunction(entry.handler):
            pending = entry.handler(**kwargs)
        else:
            pending = asyncio.to_thread(entry.handler, **kwargs)
        result = await asyncio.wait_for(pending, timeout=timeout)
    except asyncio.TimeoutError:
        log_event(logger, "tool.run.timeout", level=logging.WARNING, tool=call.name, tool_call_id=call.id)
        return {"content": None, "error": f"{call.name} timed out after {timeout}s"}
    except Exception as exc:
        log_event(
            logger,
            "tool.run.failed",
            level=logging.WARNING,
            tool=call.name,
            tool_call_id=call.id,
            error=str(exc),
        )
        return {"content": None, "error": str(exc)}

    if inspect.isawaitable(result):
        result = await result
    log_event(logger, "tool.run.done", tool=call.name, tool_call_id=call.id)
    return _normalize(result)

"""Name -> function registry for streamed tool calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, Type, Union

from pydantic import BaseModel

from prefixstream.tools.args import WeatherArgs
from prefixstream.tools.weather import get_current_weather

ToolHandler = Callable[..., Union[Awaitable[Any], Any]]

DEFAULT_TOOL_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class RegisteredFunction:
    name: str
    handler: ToolHandler
    args_model: Type[BaseModel] | None = None
    description: str = ""


class FunctionRegistry:
    """Functions the client is willing to run on behalf of the stream.

    Supports ``name in registry`` so it can be handed straight to the
    reducer.
    """

    def __init__(self) -> None:
        self._functions: Dict[str, RegisteredFunction] = {}

    def register(
        self,
        name: str,
        handler: ToolHandler,
        *,
        args_model: Type[BaseModel] | None = None,
        description: str = "",
    ) -> None:
        if not name:
            raise ValueError("function name must not be empty")
        self._functions[name] = RegisteredFunction(name, handler, args_model, description)

    def get(self, name: str) -> RegisteredFunction | None:
        return self._functions.get(name)

    def names(self) -> list[str]:
        return list(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)


def default_registry() -> FunctionRegistry:
    registry = FunctionRegistry()
    registry.register(
        "get_current_weather",
        get_current_weather,
        args_model=WeatherArgs,
        description="Current weather for a latitude/longitude pair",
    )
    return registry

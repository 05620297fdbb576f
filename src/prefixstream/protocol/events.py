"""Typed events produced by the line decoder."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventKind(str, Enum):
    CONTENT = "content"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"
    METADATA = "metadata"
    DEBUG = "debug"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").upper()


@dataclass(frozen=True)
class ParsedPayload:
    """Payload that parsed as JSON."""

    value: Any


@dataclass(frozen=True)
class RawPayload:
    """Payload kept as text because it was not valid JSON (or no prefix matched)."""

    text: str


Payload = Union[ParsedPayload, RawPayload]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """One decoded line.

    ``received_at`` is excluded from equality so two decodes of the same line
    compare equal.
    """

    kind: EventKind
    payload: Payload
    raw_line: str
    prefix: str | None = None
    received_at: datetime = field(default_factory=_utcnow, compare=False)

    @property
    def is_parsed(self) -> bool:
        return isinstance(self.payload, ParsedPayload)

    @property
    def value(self) -> Any:
        """The JSON value, or the raw text for unparsed payloads."""
        if isinstance(self.payload, ParsedPayload):
            return self.payload.value
        return self.payload.text


class ToolCall(BaseModel):
    """A requested local function invocation (``9:`` / ``FUNC:`` lines)."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    arguments: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("arguments", mode="before")
    @classmethod
    def _default_arguments(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            # Some servers send arguments as a JSON-encoded string.
            try:
                return json.loads(value) if value.strip() else {}
            except ValueError:
                return value
        return value


class ToolResult(BaseModel):
    """The outcome of a tool call as reported by the server (``a:`` / ``RESP:``)."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str | None = None
    success: bool | None = None
    result: Any = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class StreamMetadata(BaseModel):
    """Terminal metadata (``e:`` / ``META:``); ``tokens`` is either a count or a breakdown."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    finish_reason: str | None = Field(None, alias="finishReason")
    tokens: int | dict[str, Any] | None = None


M = TypeVar("M", bound=BaseModel)


def payload_model(event: Event, model: Type[M]) -> M:
    """Validate an event payload into ``model``.

    Raises ``ValueError`` for unparsed payloads and ``pydantic.ValidationError``
    (itself a ``ValueError``) when the JSON does not fit the model.
    """

    if not isinstance(event.payload, ParsedPayload):
        raise ValueError(f"{event.kind.value} payload is not JSON")
    return model.model_validate(event.payload.value)


__all__ = [
    "Event",
    "EventKind",
    "ParsedPayload",
    "Payload",
    "RawPayload",
    "StreamMetadata",
    "ToolCall",
    "ToolResult",
    "payload_model",
]

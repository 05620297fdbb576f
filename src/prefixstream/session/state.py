"""Per-stream session state."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Tuple

from prefixstream.protocol.events import Event, ToolCall


class SessionState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in {SessionState.COMPLETED, SessionState.ABORTED, SessionState.ERRORED}


@dataclass(frozen=True)
class PendingToolCall:
    """A tool call seen on the stream.

    ``resolved`` is False when the name is not registered or the payload did
    not describe a call; ``reason`` says which. Matching against later tool
    results is left to consumers.
    """

    event: Event
    call: ToolCall | None
    resolved: bool
    reason: str | None = None

    @property
    def call_id(self) -> str | None:
        return self.call.id if self.call else None

    @property
    def name(self) -> str | None:
        if self.call:
            return self.call.name
        value: Any = self.event.value
        if isinstance(value, dict) and isinstance(value.get("name"), str):
            return value["name"]
        return None


@dataclass(frozen=True)
class StreamSession:
    """Snapshot of one logical stream; updated by returning new instances."""

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: SessionState = SessionState.IDLE
    text: str = ""
    events: Tuple[Event, ...] = ()
    pending_calls: Tuple[PendingToolCall, ...] = ()
    finish_reason: str | None = None
    error: str | None = None
    cancel_requested: bool = False

    @property
    def unresolved_calls(self) -> Tuple[PendingToolCall, ...]:
        return tuple(call for call in self.pending_calls if not call.resolved)

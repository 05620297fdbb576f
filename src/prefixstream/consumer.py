"""Consumer interface notified by the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from prefixstream.protocol.events import Event, ToolCall
    from prefixstream.session.state import SessionState


class StreamConsumer(Protocol):
    def on_event(self, event: Event) -> None: ...

    def on_text_appended(self, text: str) -> None: ...

    def on_session_state_changed(self, state: SessionState) -> None: ...

    def on_tool_result(self, call: ToolCall, result: dict[str, Any]) -> None: ...


class NullConsumer:
    """Consumer that ignores every notification."""

    def on_event(self, event: Event) -> None:
        return None

    def on_text_appended(self, text: str) -> None:
        return None

    def on_session_state_changed(self, state: SessionState) -> None:
        return None

    def on_tool_result(self, call: ToolCall, result: dict[str, Any]) -> None:
        return None


@dataclass
class RecordingConsumer:
    """Keeps every notification in memory, in arrival order."""

    events: list[Event] = field(default_factory=list)
    text_chunks: list[str] = field(default_factory=list)
    states: list[SessionState] = field(default_factory=list)
    tool_results: list[tuple[ToolCall, dict[str, Any]]] = field(default_factory=list)

    def on_event(self, event: Event) -> None:
        self.events.append(event)

    def on_text_appended(self, text: str) -> None:
        self.text_chunks.append(text)

    def on_session_state_changed(self, state: SessionState) -> None:
        self.states.append(state)

    def on_tool_result(self, call: ToolCall, result: dict[str, Any]) -> None:
        self.tool_results.append((call, result))

    @property
    def text(self) -> str:
        return "".join(self.text_chunks)

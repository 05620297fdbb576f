"""Rich console rendering of a running stream."""

from __future__ import annotations

import json
from typing import Any, Iterable

from rich.console import Console
from rich.table import Table
from rich.text import Text

from prefixstream.protocol.events import Event, EventKind, ParsedPayload, ToolCall
from prefixstream.session.state import SessionState, StreamSession

KIND_STYLES = {
    EventKind.CONTENT: "blue",
    EventKind.TOOL_CALL: "dark_orange",
    EventKind.TOOL_RESULT: "green",
    EventKind.METADATA: "magenta",
    EventKind.DEBUG: "bright_black",
    EventKind.UNKNOWN: "bright_black",
}

STATE_STYLES = {
    SessionState.COMPLETED: "green",
    SessionState.ABORTED: "yellow",
    SessionState.ERRORED: "red",
}


def format_payload(event: Event, *, indent: int | None = None) -> str:
    if isinstance(event.payload, ParsedPayload):
        return json.dumps(event.payload.value, ensure_ascii=False, indent=indent)
    return event.payload.text


def event_label(event: Event) -> str:
    if event.prefix == "error":
        return "ERROR"
    return event.kind.label


class ConsoleRenderer:
    """StreamConsumer that writes text as it arrives.

    With ``show_events`` each decoded event is also printed on its own line,
    tagged and coloured by kind.
    """

    def __init__(self, console: Console | None = None, *, show_events: bool = False) -> None:
        self.console = console or Console(highlight=False)
        self.show_events = show_events
        self.pending_newline = False

    def _break_line(self) -> None:
        if self.pending_newline:
            self.console.print()
            self.pending_newline = False

    def on_text_appended(self, text: str) -> None:
        self.console.print(Text(text), end="")
        self.pending_newline = not text.endswith("\n")

    def on_event(self, event: Event) -> None:
        if not self.show_events and event.prefix != "error":
            return
        self._break_line()
        style = KIND_STYLES.get(event.kind, "white")
        line = Text()
        line.append(f"[{event_label(event)}]", style=f"bold {style}")
        line.append(f" {event.received_at.strftime('%H:%M:%S.%f')[:-3]} ", style="bright_black")
        line.append(format_payload(event), style=style)
        self.console.print(line)

    def on_session_state_changed(self, state: SessionState) -> None:
        if not state.is_terminal:
            return
        self._break_line()
        self.console.print(Text(f"[stream {state.value}]", style=STATE_STYLES.get(state, "white")))

    def on_tool_result(self, call: ToolCall, result: dict[str, Any]) -> None:
        self._break_line()
        error = result.get("error")
        if error:
            self.console.print(Text(f"🛠️ | Tool[failed]: {call.name} ({call.id}): {error}", style="red"))
            return
        content = result.get("content")
        rendered = content if isinstance(content, str) else json.dumps(content, ensure_ascii=False, default=str)
        self.console.print(Text(f"🛠️ | Tool[completed]: {call.name} ({call.id}) -> {rendered}", style="green"))


def render_event_table(events: Iterable[Event]) -> Table:
    """Table of events in arrival order, as in the debug event panel."""
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("#", justify="right", style="bright_black")
    table.add_column("Kind")
    table.add_column("Received", style="bright_black")
    table.add_column("Payload", overflow="fold")
    for index, event in enumerate(events, start=1):
        style = KIND_STYLES.get(event.kind, "white")
        table.add_row(
            str(index),
            Text(event_label(event), style=style),
            event.received_at.isoformat(timespec="milliseconds"),
            format_payload(event, indent=2),
        )
    return table


def render_summary(session: StreamSession) -> Table:
    table = Table(show_header=False, box=None)
    table.add_column("", style="cyan")
    table.add_column("")
    table.add_row("state", Text(session.state.value, style=STATE_STYLES.get(session.state, "white")))
    table.add_row("events", str(len(session.events)))
    table.add_row("characters", str(len(session.text)))
    if session.finish_reason:
        table.add_row("finish reason", session.finish_reason)
    if session.error:
        table.add_row("error", Text(session.error, style="red"))
    for pending in session.unresolved_calls:
        table.add_row("unresolved", f"{pending.name or '<unknown>'}: {pending.reason}")
    return table

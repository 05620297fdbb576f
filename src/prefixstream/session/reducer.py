"""Pure session transitions.

``apply_event`` never performs side effects. When a tool call names a
registered function it returns an ``InvokeTool`` command for the caller to
execute; the dispatcher runs those commands outside the read loop.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Container, Tuple

from pydantic import ValidationError

from prefixstream.log_utils import log_event
from prefixstream.protocol.decoder import make_error_event
from prefixstream.protocol.events import (
    Event,
    EventKind,
    ParsedPayload,
    StreamMetadata,
    ToolCall,
    payload_model,
)
from prefixstream.session.state import PendingToolCall, SessionState, StreamSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvokeTool:
    """Request to run a registered function for a streamed tool call."""

    call: ToolCall
    event: Event


Command = InvokeTool


def start_session(session: StreamSession) -> StreamSession:
    """Idle (or any finished state) -> Streaming with empty text and log."""
    return replace(
        session,
        state=SessionState.STREAMING,
        text="",
        events=(),
        pending_calls=(),
        finish_reason=None,
        error=None,
        cancel_requested=False,
    )


def content_text(event: Event) -> str:
    """Text to append for a content event.

    Strings are used as-is, ``null`` contributes nothing and any other JSON
    value is serialized rather than dropped.
    """
    if not isinstance(event.payload, ParsedPayload):
        return event.payload.text
    value = event.payload.value
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _tool_call(session: StreamSession, event: Event, registry: Container[str]) -> Tuple[StreamSession, Tuple[Command, ...]]:
    try:
        call = payload_model(event, ToolCall)
    except (ValidationError, ValueError) as exc:
        log_event(logger, "tool.call.invalid", level=logging.WARNING, error=str(exc).split("\n", 1)[0])
        pending = PendingToolCall(event=event, call=None, resolved=False, reason="invalid tool call payload")
        return replace(session, pending_calls=session.pending_calls + (pending,)), ()

    if call.name not in registry:
        log_event(logger, "tool.call.unresolved", level=logging.WARNING, tool=call.name, tool_call_id=call.id)
        pending = PendingToolCall(event=event, call=call, resolved=False, reason=f"function {call.name} not registered")
        return replace(session, pending_calls=session.pending_calls + (pending,)), ()

    log_event(logger, "tool.call.pending", tool=call.name, tool_call_id=call.id)
    pending = PendingToolCall(event=event, call=call, resolved=True)
    return replace(session, pending_calls=session.pending_calls + (pending,)), (InvokeTool(call=call, event=event),)


def _metadata(session: StreamSession, event: Event) -> StreamSession:
    try:
        meta = payload_model(event, StreamMetadata)
    except (ValidationError, ValueError):
        log_event(logger, "stream.metadata.invalid", level=logging.WARNING)
        return session
    if meta.finish_reason is None:
        return session
    log_event(logger, "stream.completed", finish_reason=meta.finish_reason, source="metadata")
    return replace(session, state=SessionState.COMPLETED, finish_reason=meta.finish_reason)


def apply_event(
    session: StreamSession, event: Event, registry: Container[str] = ()
) -> Tuple[StreamSession, Tuple[Command, ...]]:
    """Apply one event to a streaming session.

    The event is appended to the log before any kind-specific handling.
    Sessions that are not streaming are returned unchanged.
    """

    if session.state is not SessionState.STREAMING:
        log_event(logger, "stream.event.ignored", level=logging.DEBUG, state=session.state.value, kind=event.kind.value)
        return session, ()

    session = replace(session, events=session.events + (event,))

    if event.kind is EventKind.CONTENT:
        return replace(session, text=session.text + content_text(event)), ()
    if event.kind is EventKind.TOOL_CALL:
        return _tool_call(session, event, registry)
    if event.kind is EventKind.METADATA:
        return _metadata(session, event), ()
    # Tool results, debug and unknown lines are log-only.
    return session, ()


def complete_session(session: StreamSession) -> StreamSession:
    """Streaming -> Completed on transport EOF; no-op once terminal."""
    if session.state is not SessionState.STREAMING:
        return session
    log_event(logger, "stream.completed", source="eof")
    return replace(session, state=SessionState.COMPLETED)


def abort_session(session: StreamSession) -> StreamSession:
    """Streaming -> Aborted, keeping accumulated text."""
    if session.state is not SessionState.STREAMING:
        return session
    log_event(logger, "stream.aborted", events=len(session.events))
    return replace(session, state=SessionState.ABORTED, cancel_requested=True)


def fail_session(session: StreamSession, cause: BaseException | str) -> StreamSession:
    """Streaming -> Errored with a synthetic error event appended to the log."""
    if session.state is not SessionState.STREAMING:
        return session
    log_event(logger, "stream.errored", level=logging.ERROR, error=str(cause))
    return replace(
        session,
        state=SessionState.ERRORED,
        error=str(cause),
        events=session.events + (make_error_event(cause),),
    )

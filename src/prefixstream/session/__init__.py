"""Stream session state, pure transitions and the dispatcher."""

from __future__ import annotations

from prefixstream.session.dispatcher import StreamDispatcher
from prefixstream.session.reducer import (
    Command,
    InvokeTool,
    abort_session,
    apply_event,
    complete_session,
    content_text,
    fail_session,
    start_session,
)
from prefixstream.session.state import PendingToolCall, SessionState, StreamSession

__all__ = [
    "Command",
    "InvokeTool",
    "PendingToolCall",
    "SessionState",
    "StreamDispatcher",
    "StreamSession",
    "abort_session",
    "apply_event",
    "complete_session",
    "content_text",
    "fail_session",
    "start_session",
]

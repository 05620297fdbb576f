"""Owns a session, applies events and runs the reducer's commands."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Set

from prefixstream.consumer import NullConsumer, StreamConsumer
from prefixstream.log_utils import log_event
from prefixstream.protocol.events import Event
from prefixstream.session.reducer import (
    Command,
    InvokeTool,
    abort_session,
    apply_event,
    complete_session,
    fail_session,
    start_session,
)
from prefixstream.session.state import SessionState, StreamSession
from prefixstream.tools import DEFAULT_TOOL_TIMEOUT_S, FunctionRegistry, run_tool

logger = logging.getLogger(__name__)


class StreamDispatcher:
    """Single-owner wrapper around the pure reducer.

    Tool invocations are scheduled as background tasks on the running loop so
    they never block the read loop; their results reach the consumer through
    ``on_tool_result`` whenever they finish.
    """

    def __init__(
        self,
        registry: FunctionRegistry | None = None,
        consumer: StreamConsumer | None = None,
        *,
        tool_timeout: float | None = DEFAULT_TOOL_TIMEOUT_S,
    ) -> None:
        self.registry = registry if registry is not None else FunctionRegistry()
        self.consumer: StreamConsumer = consumer if consumer is not None else NullConsumer()
        self.tool_timeout = tool_timeout
        self._session = StreamSession()
        self._tasks: Set[asyncio.Task[None]] = set()

    @property
    def session(self) -> StreamSession:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state

    def start(self) -> StreamSession:
        """Begin a new stream; any previous session is replaced."""
        self._update(start_session(StreamSession()))
        log_event(logger, "stream.started", session_id=self._session.session_id)
        return self._session

    def reset(self) -> StreamSession:
        """Drop the session and return to Idle."""
        self._update(StreamSession())
        return self._session

    def dispatch(self, event: Event) -> StreamSession:
        session, commands = apply_event(self._session, event, self.registry)
        self._update(session)
        for command in commands:
            self._execute(command)
        return self._session

    def complete(self) -> StreamSession:
        return self._update(complete_session(self._session))

    def abort(self) -> StreamSession:
        return self._update(abort_session(self._session))

    def fail(self, cause: BaseException | str) -> StreamSession:
        return self._update(fail_session(self._session, cause))

    async def wait_for_tools(self) -> None:
        """Wait for tool invocations that are still running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _update(self, new: StreamSession) -> StreamSession:
        old = self._session
        self._session = new
        if new is old:
            return new
        if new.session_id == old.session_id:
            for event in new.events[len(old.events) :]:
                self._notify("on_event", event)
            if len(new.text) > len(old.text):
                self._notify("on_text_appended", new.text[len(old.text) :])
        if new.state is not old.state:
            self._notify("on_session_state_changed", new.state)
        return new

    def _notify(self, method: str, *args: Any) -> None:
        try:
            getattr(self.consumer, method)(*args)
        except Exception:
            logger.exception("consumer.failed", extra={"event_fields": {"callback": method}})

    def _execute(self, command: Command) -> None:
        if isinstance(command, InvokeTool):
            task = asyncio.get_running_loop().create_task(self._invoke(command))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _invoke(self, command: InvokeTool) -> None:
        result: Dict[str, Any] = await run_tool(self.registry, command.call, timeout=self.tool_timeout)
        self._notify("on_tool_result", command.call, result)

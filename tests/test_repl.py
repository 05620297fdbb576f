from __future__ import annotations

import asyncio
import signal
from io import StringIO
from unittest import mock

import pytest
from rich.console import Console

from prefixstream.config import StreamSettings
from prefixstream.display import ConsoleRenderer
from prefixstream.protocol.decoder import decode_line
from prefixstream.protocol.prefixes import COMPACT_TABLE
from prefixstream.repl import _handle_slash, _interrupt_cancels, http_source, stream_to_console
from prefixstream.session.dispatcher import StreamDispatcher
from prefixstream.session.state import SessionState
from prefixstream.transport import SimulatedChunkSource


def _renderer() -> tuple[ConsoleRenderer, StringIO]:
    buffer = StringIO()
    return ConsoleRenderer(Console(file=buffer, width=100, color_system=None)), buffer


def test_slash_commands():
    renderer, buffer = _renderer()
    dispatcher = StreamDispatcher(consumer=renderer)
    dispatcher.start()
    dispatcher.dispatch(decode_line('0:"x"', COMPACT_TABLE))

    assert _handle_slash("/variant semantic", renderer, dispatcher, "compact") == "semantic"
    assert _handle_slash("/variant nope", renderer, dispatcher, "compact") == "compact"
    _handle_slash("/events", renderer, dispatcher, "compact")
    assert renderer.show_events is True
    _handle_slash("/clear", renderer, dispatcher, "compact")
    assert dispatcher.state is SessionState.IDLE
    _handle_slash("/bogus", renderer, dispatcher, "compact")
    assert "[unknown command: /bogus]" in buffer.getvalue()


@pytest.mark.asyncio
async def test_stream_to_console():
    renderer, buffer = _renderer()
    dispatcher = StreamDispatcher(consumer=renderer)
    session = await stream_to_console(SimulatedChunkSource(['0:"hi"\n', 'e:{"finishReason":"stop"}\n']), "compact", dispatcher)
    assert session.state is SessionState.COMPLETED
    assert buffer.getvalue().startswith("hi\n[stream completed]")


def test_http_source_uses_settings():
    settings = StreamSettings(endpoint="http://test/chat", headers={"X-Key": "1"}, read_timeout=5.0)
    source = http_source(settings, "hello")
    assert source.endpoint == "http://test/chat"
    assert source.body == {"messages": [{"role": "user", "content": "hello"}]}
    assert source.headers["X-Key"] == "1"


@pytest.mark.asyncio
async def test_ctrl_c_cancels_the_running_stream_only_while_it_runs(monkeypatch):
    loop = asyncio.get_running_loop()
    installed = {}
    monkeypatch.setattr(loop, "add_signal_handler", lambda sig, callback: installed.update({sig: callback}))
    monkeypatch.setattr(loop, "remove_signal_handler", lambda sig: installed.pop(sig) is not None)
    runner = mock.Mock()

    with _interrupt_cancels(runner):
        installed[signal.SIGINT]()

    runner.cancel.assert_called_once_with()
    assert installed == {}

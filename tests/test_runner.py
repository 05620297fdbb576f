from __future__ import annotations

import asyncio
from pathlib import Path
from unittest import mock

import pytest

from prefixstream.consumer import RecordingConsumer
from prefixstream.errors import TransportError
from prefixstream.protocol.events import EventKind
from prefixstream.protocol.prefixes import COMPACT_TABLE, SEMANTIC_TABLE
from prefixstream.runner import StreamRunner, run_stream
from prefixstream.session.dispatcher import StreamDispatcher
from prefixstream.session.state import SessionState
from prefixstream.tools import FunctionRegistry, default_registry
from prefixstream.transport import FileChunkSource, SimulatedChunkSource
from tests.utils import COMPACT_SCENARIO, SEMANTIC_SCENARIO, split_at


@pytest.mark.asyncio
@pytest.mark.parametrize("cuts", [(3, 40, 90), (1, 2, 3), (60, 61, 150), (10, 100, 150)])
async def test_semantic_scenario_in_three_chunks(cuts):
    data = SEMANTIC_SCENARIO.encode()
    consumer = RecordingConsumer()
    dispatcher = StreamDispatcher(FunctionRegistry(), consumer)
    session = await run_stream(SimulatedChunkSource(split_at(data, cuts)), SEMANTIC_TABLE, dispatcher)

    assert session.text == "Hi"
    assert [e.kind for e in session.events] == [
        EventKind.CONTENT,
        EventKind.TOOL_CALL,
        EventKind.TOOL_RESULT,
        EventKind.METADATA,
    ]
    assert session.state is SessionState.COMPLETED
    assert consumer.states == [SessionState.STREAMING, SessionState.COMPLETED]
    assert consumer.text == "Hi"
    assert consumer.events == list(session.events)


@pytest.mark.asyncio
async def test_compact_scenario():
    dispatcher = StreamDispatcher(default_registry())
    session = await run_stream(SimulatedChunkSource([COMPACT_SCENARIO]), COMPACT_TABLE, dispatcher)
    assert session.text == "AB"
    assert session.state is SessionState.COMPLETED
    assert [p.name for p in session.unresolved_calls] == ["unknown_fn"]


@pytest.mark.asyncio
async def test_eof_completes_and_flushes_last_line():
    dispatcher = StreamDispatcher()
    session = await run_stream(SimulatedChunkSource(['0:"a"\n0:', '"b"']), COMPACT_TABLE, dispatcher)
    assert session.state is SessionState.COMPLETED
    assert session.text == "ab"
    assert session.finish_reason is None


@pytest.mark.asyncio
async def test_lines_after_finish_reason_are_not_applied():
    source = SimulatedChunkSource(['0:"a"\ne:{"finishReason":"stop"}\n0:"late"\n', '0:"later"\n'])
    session = await run_stream(source, COMPACT_TABLE, StreamDispatcher())
    assert session.text == "a"
    assert len(session.events) == 2
    assert await source.read_next_chunk() is None


@pytest.mark.asyncio
async def test_malformed_line_does_not_stop_the_stream():
    source = SimulatedChunkSource(['TEXT: {not json\nTEXT: "next"\nMETA: {"finishReason":"stop"}\n'])
    session = await run_stream(source, SEMANTIC_TABLE, StreamDispatcher())
    assert session.events[0].kind is EventKind.CONTENT
    assert session.events[0].value == "{not json"
    assert session.text.endswith("next")
    assert session.state is SessionState.COMPLETED


class _CancelAfter(RecordingConsumer):
    def __init__(self, limit: int) -> None:
        super().__init__()
        self.limit = limit
        self.runner: StreamRunner | None = None

    def on_event(self, event) -> None:
        super().on_event(event)
        if len(self.events) == self.limit and self.runner is not None:
            self.runner.cancel()


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 2, 3])
async def test_cancel_after_n_events(limit):
    consumer = _CancelAfter(limit)
    dispatcher = StreamDispatcher(consumer=consumer)
    source = SimulatedChunkSource(['0:"A"\n0:"B"\n0:"C"\n0:"D"\n0:"E', '"\n'])
    runner = StreamRunner(source, COMPACT_TABLE, dispatcher)
    consumer.runner = runner

    session = await runner.run()

    assert session.state is SessionState.ABORTED
    assert session.text == "ABCDE"[:limit]
    assert len(session.events) == limit
    assert consumer.states[-1] is SessionState.ABORTED


@pytest.mark.asyncio
async def test_cancel_from_another_task_while_waiting():
    source = SimulatedChunkSource(['0:"A"\n', '0:"B"\n', '0:"C"\n'], delay=0.05)
    dispatcher = StreamDispatcher()
    runner = StreamRunner(source, COMPACT_TABLE, dispatcher)
    task = asyncio.create_task(runner.run())
    while dispatcher.session.text != "A":
        await asyncio.sleep(0.005)
    runner.cancel()
    session = await task
    assert session.state is SessionState.ABORTED
    assert session.text == "A"


class _FailingSource:
    def __init__(self, chunks):
        self._chunks = list(chunks)
        self.closed = False

    async def read_next_chunk(self):
        if self._chunks:
            return self._chunks.pop(0)
        raise TransportError("connection reset")

    def cancel(self) -> None:
        pass

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_transport_failure_ends_errored_with_partial_text():
    source = _FailingSource([b'0:"partial"\n0:"lost'])
    consumer = RecordingConsumer()
    session = await run_stream(source, COMPACT_TABLE, StreamDispatcher(consumer=consumer))
    assert session.state is SessionState.ERRORED
    assert session.text == "partial"
    assert session.error == "connection reset"
    assert session.events[-1].prefix == "error"
    assert consumer.events[-1].prefix == "error"
    assert source.closed


@pytest.mark.asyncio
async def test_registered_tool_runs_in_background():
    calls = []

    async def lookup(latitude: float, longitude: float) -> dict:
        calls.append((latitude, longitude))
        return {"content": {"temperature": 68}, "error": None}

    registry = FunctionRegistry()
    registry.register("get_current_weather", lookup)
    consumer = RecordingConsumer()
    dispatcher = StreamDispatcher(registry, consumer)

    session = await run_stream(SimulatedChunkSource.demo(SEMANTIC_TABLE, delay=0), SEMANTIC_TABLE, dispatcher)
    await dispatcher.wait_for_tools()

    assert session.state is SessionState.COMPLETED
    assert session.text == (
        "I'll check the weather in San Francisco for you."
        " The current temperature in San Francisco is 68°F with foggy conditions."
    )
    assert calls == [(37.7749, -122.4194)]
    ((call, result),) = consumer.tool_results
    assert call.id == "func_123"
    assert result == {"content": {"temperature": 68}, "error": None}


@pytest.mark.asyncio
async def test_compact_demo_skips_debug_line():
    session = await run_stream(SimulatedChunkSource.demo(COMPACT_TABLE, delay=0), COMPACT_TABLE, StreamDispatcher())
    assert EventKind.DEBUG not in {e.kind for e in session.events}
    assert EventKind.UNKNOWN not in {e.kind for e in session.events}
    assert session.finish_reason == "stop"


class _RaisingConsumer(RecordingConsumer):
    def on_text_appended(self, text: str) -> None:
        super().on_text_appended(text)
        raise RuntimeError("render failed")


@pytest.mark.asyncio
async def test_failing_consumer_does_not_stall_the_stream(caplog):
    consumer = _RaisingConsumer()
    source = SimulatedChunkSource(['0:"A"\n0:"B"\ne:{"finishReason":"stop"}\n'])
    with caplog.at_level("ERROR"):
        session = await run_stream(source, COMPACT_TABLE, StreamDispatcher(consumer=consumer))
    assert session.state is SessionState.COMPLETED
    assert session.text == "AB"
    assert consumer.states == [SessionState.STREAMING, SessionState.COMPLETED]
    assert [r.getMessage() for r in caplog.records].count("consumer.failed") == 2


class _BrokenSource(_FailingSource):
    async def read_next_chunk(self):
        if self._chunks:
            return self._chunks.pop(0)
        raise OSError("device not ready")


@pytest.mark.asyncio
async def test_unexpected_source_failure_ends_errored():
    source = _BrokenSource([b'0:"kept"\n'])
    session = await run_stream(source, COMPACT_TABLE, StreamDispatcher())
    assert session.state is SessionState.ERRORED
    assert session.text == "kept"
    assert session.error == "device not ready"
    assert source.closed


@pytest.mark.asyncio
async def test_file_read_failure_mid_stream_ends_errored(tmp_path: Path):
    capture = tmp_path / "capture.txt"
    capture.write_bytes(b'0:"one"\n0:"two"\n')
    source = FileChunkSource(capture, chunk_size=8)
    dispatcher = StreamDispatcher()
    runner = StreamRunner(source, COMPACT_TABLE, dispatcher)

    original_read = source.read_next_chunk

    async def read_then_fail():
        chunk = await original_read()
        assert source._fh is not None
        source._fh.close()
        source._fh = mock.Mock(read=mock.Mock(side_effect=OSError("disk gone")))
        return chunk

    source.read_next_chunk = read_then_fail  # type: ignore[method-assign]
    session = await runner.run()

    assert session.state is SessionState.ERRORED
    assert session.text == "one"
    assert "disk gone" in (session.error or "")
    assert session.events[-1].prefix == "error"

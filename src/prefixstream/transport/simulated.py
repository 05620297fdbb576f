"""In-process chunk source standing in for an HTTP response body."""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, List, Tuple

from prefixstream.protocol.encoder import encode_line
from prefixstream.protocol.events import EventKind
from prefixstream.protocol.prefixes import PrefixTable

DEMO_SCRIPT: Tuple[Tuple[EventKind, Any], ...] = (
    (EventKind.DEBUG, {"event": "stream_start"}),
    (EventKind.CONTENT, "I'll check the weather in San Francisco for you."),
    (
        EventKind.TOOL_CALL,
        {
            "id": "func_123",
            "name": "get_current_weather",
            "arguments": {"latitude": 37.7749, "longitude": -122.4194},
        },
    ),
    (
        EventKind.TOOL_RESULT,
        {
            "id": "func_123",
            "name": "get_current_weather",
            "success": True,
            "result": {"temperature": 68, "conditions": "Foggy"},
        },
    ),
    (EventKind.CONTENT, " The current temperature in San Francisco is "),
    (EventKind.CONTENT, "68°F"),
    (EventKind.CONTENT, " with foggy conditions."),
    (EventKind.METADATA, {"finishReason": "stop", "tokens": {"prompt": 54, "completion": 42, "total": 96}}),
)


class SimulatedChunkSource:
    """Replays fixed chunks with an optional delay between them."""

    def __init__(self, chunks: Iterable[bytes | str], *, delay: float = 0.0) -> None:
        self._chunks: List[bytes] = [c.encode("utf-8") if isinstance(c, str) else c for c in chunks]
        self._delay = delay
        self._index = 0
        self._cancelled = False

    @classmethod
    def demo(cls, table: PrefixTable, *, delay: float = 0.3) -> "SimulatedChunkSource":
        """The weather conversation, one line per chunk.

        Kinds the variant has no prefix for are left out.
        """
        supported = set(table.kinds())
        lines = [encode_line(kind, payload, table) for kind, payload in DEMO_SCRIPT if kind in supported]
        return cls(lines, delay=delay)

    async def read_next_chunk(self) -> bytes | None:
        if self._cancelled or self._index >= len(self._chunks):
            return None
        if self._index and self._delay > 0:
            await asyncio.sleep(self._delay)
            if self._cancelled:
                return None
        chunk = self._chunks[self._index]
        self._index += 1
        return chunk

    def cancel(self) -> None:
        self._cancelled = True

    async def aclose(self) -> None:
        self._chunks = []

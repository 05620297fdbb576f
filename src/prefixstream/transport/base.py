"""Chunk source interface used by the read loop."""

from __future__ import annotations

from typing import Protocol


class ChunkSource(Protocol):
    """Anything that yields response body bytes.

    ``read_next_chunk`` returns ``None`` at end of stream and raises
    ``TransportError`` on failure. ``cancel`` is synchronous and only asks the
    source to stop; ``aclose`` releases resources.
    """

    async def read_next_chunk(self) -> bytes | None: ...

    def cancel(self) -> None: ...

    async def aclose(self) -> None: ...

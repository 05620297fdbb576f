"""Replay a captured stream body from disk."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import BinaryIO

from prefixstream.errors import TransportError

DEFAULT_CHUNK_SIZE = 4096


class FileChunkSource:
    def __init__(self, path: str | Path, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.path = Path(path)
        self.chunk_size = chunk_size
        self._fh: BinaryIO | None = None
        self._cancelled = False

    async def read_next_chunk(self) -> bytes | None:
        if self._cancelled:
            return None
        if self._fh is None:
            try:
                self._fh = self.path.open("rb")
            except OSError as exc:
                raise TransportError(f"cannot read {self.path}: {exc}") from exc
        try:
            chunk = await asyncio.to_thread(self._fh.read, self.chunk_size)
        except OSError as exc:
            raise TransportError(f"reading {self.path} failed: {exc}") from exc
        return chunk or None

    def cancel(self) -> None:
        self._cancelled = True

    async def aclose(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

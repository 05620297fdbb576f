"""Reassemble newline-delimited lines from arbitrary byte chunks."""

from __future__ import annotations

import codecs
import logging
from typing import List

from prefixstream.log_utils import log_chunks_enabled, log_event

logger = logging.getLogger(__name__)


class LineReassembler:
    """Incremental UTF-8 line splitter.

    Chunk boundaries may fall anywhere, including inside a multi-byte
    character; the incremental decoder holds partial sequences until the rest
    arrives. Whitespace-only lines are dropped. Line length is unbounded.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._closed = False

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._buffer

    def feed(self, chunk: bytes) -> List[str]:
        if self._closed:
            raise RuntimeError("feed() called after close()")
        if log_chunks_enabled():
            log_event(logger, "stream.chunk", level=logging.DEBUG, size=len(chunk))
        self._buffer += self._decoder.decode(chunk)
        if "\n" not in self._buffer:
            return []
        *complete, self._buffer = self._buffer.split("\n")
        return [line for line in complete if line.strip()]

    def close(self) -> List[str]:
        """Flush the trailing unterminated line, if any."""
        if self._closed:
            return []
        self._closed = True
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        lines = tail.split("\n")
        return [line for line in lines if line.strip()]

    def discard(self) -> None:
        """Drop buffered bytes without emitting them."""
        self._buffer = ""
        self._decoder.reset()
        self._closed = True

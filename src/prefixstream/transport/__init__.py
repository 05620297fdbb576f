"""Chunk sources: HTTP, simulated and file replay."""

from __future__ import annotations

from prefixstream.transport.base import ChunkSource
from prefixstream.transport.file import FileChunkSource
from prefixstream.transport.http import HttpChunkSource, chat_request_body
from prefixstream.transport.simulated import DEMO_SCRIPT, SimulatedChunkSource

__all__ = [
    "DEMO_SCRIPT",
    "ChunkSource",
    "FileChunkSource",
    "HttpChunkSource",
    "SimulatedChunkSource",
    "chat_request_body",
]

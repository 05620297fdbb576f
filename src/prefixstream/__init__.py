"""Decoder and dispatcher for line-oriented, prefix-tagged chat streams."""

from __future__ import annotations

from prefixstream.consumer import NullConsumer, RecordingConsumer, StreamConsumer
from prefixstream.errors import ConfigError, PrefixStreamError, PrefixTableError, TransportError
from prefixstream.protocol import (
    COMPACT_TABLE,
    SEMANTIC_TABLE,
    Event,
    EventKind,
    LineReassembler,
    ParsedPayload,
    PrefixTable,
    RawPayload,
    decode_line,
    encode_line,
    get_table,
)
from prefixstream.runner import StreamRunner, run_stream
from prefixstream.session import SessionState, StreamDispatcher, StreamSession, apply_event
from prefixstream.tools import FunctionRegistry, default_registry

__version__ = "0.1.0"

__all__ = [
    "COMPACT_TABLE",
    "SEMANTIC_TABLE",
    "ConfigError",
    "Event",
    "EventKind",
    "FunctionRegistry",
    "LineReassembler",
    "NullConsumer",
    "ParsedPayload",
    "PrefixStreamError",
    "PrefixTable",
    "PrefixTableError",
    "RawPayload",
    "RecordingConsumer",
    "SessionState",
    "StreamConsumer",
    "StreamDispatcher",
    "StreamRunner",
    "StreamSession",
    "TransportError",
    "__version__",
    "apply_event",
    "decode_line",
    "default_registry",
    "encode_line",
    "get_table",
    "run_stream",
]

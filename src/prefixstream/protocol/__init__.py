"""Line protocol: reassembly, prefix tables, decoding and encoding."""

from __future__ import annotations

from prefixstream.protocol.decoder import decode_line, make_error_event
from prefixstream.protocol.encoder import encode_line
from prefixstream.protocol.events import (
    Event,
    EventKind,
    ParsedPayload,
    Payload,
    RawPayload,
    StreamMetadata,
    ToolCall,
    ToolResult,
    payload_model,
)
from prefixstream.protocol.prefixes import COMPACT_TABLE, SEMANTIC_TABLE, VARIANTS, PrefixTable, get_table
from prefixstream.protocol.reassembler import LineReassembler

__all__ = [
    "COMPACT_TABLE",
    "SEMANTIC_TABLE",
    "VARIANTS",
    "Event",
    "EventKind",
    "LineReassembler",
    "ParsedPayload",
    "Payload",
    "PrefixTable",
    "RawPayload",
    "StreamMetadata",
    "ToolCall",
    "ToolResult",
    "decode_line",
    "encode_line",
    "get_table",
    "make_error_event",
    "payload_model",
]

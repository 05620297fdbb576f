from __future__ import annotations

import json

import pytest

from prefixstream.protocol.decoder import decode_line, make_error_event
from prefixstream.protocol.encoder import encode_line
from prefixstream.protocol.events import (
    EventKind,
    ParsedPayload,
    RawPayload,
    StreamMetadata,
    ToolCall,
    payload_model,
)
from prefixstream.protocol.prefixes import COMPACT_TABLE, SEMANTIC_TABLE


def test_semantic_text_line():
    event = decode_line('TEXT: "Hi"', SEMANTIC_TABLE)
    assert event.kind is EventKind.CONTENT
    assert event.payload == ParsedPayload("Hi")
    assert event.prefix == "TEXT:"
    assert event.raw_line == 'TEXT: "Hi"'


def test_compact_tool_call_line():
    event = decode_line('9:{"id":"x","name":"f","arguments":{"a":1}}', COMPACT_TABLE)
    assert event.kind is EventKind.TOOL_CALL
    call = payload_model(event, ToolCall)
    assert (call.id, call.name, call.arguments) == ("x", "f", {"a": 1})


def test_unmatched_prefix_is_unknown_with_original_line():
    for line in ("hello world", "TEXT:x", 'f:{"a":1}', "text: lowercase"):
        event = decode_line(line, COMPACT_TABLE)
        assert event.kind is EventKind.UNKNOWN
        assert event.payload == RawPayload(line)
        assert event.prefix is None


def test_malformed_payload_keeps_kind_with_raw_text():
    event = decode_line("TEXT: {not json", SEMANTIC_TABLE)
    assert event.kind is EventKind.CONTENT
    assert event.payload == RawPayload("{not json")
    assert not event.is_parsed
    assert event.value == "{not json"


def test_separator_whitespace_is_stripped():
    assert decode_line('META:    {"finishReason": "stop"}  ', SEMANTIC_TABLE).payload == ParsedPayload(
        {"finishReason": "stop"}
    )
    assert decode_line('e:{"finishReason":"stop"}', COMPACT_TABLE).payload == ParsedPayload({"finishReason": "stop"})


def test_raw_payload_keeps_trailing_text():
    event = decode_line("TEXT:  plain words  ", SEMANTIC_TABLE)
    assert event.kind is EventKind.CONTENT
    assert event.payload == RawPayload("plain words  ")


def test_decoding_is_repeatable():
    line = 'RESP: {"id":"1","success":true,"result":{"temp":72}}'
    first = decode_line(line, SEMANTIC_TABLE)
    second = decode_line(line, SEMANTIC_TABLE)
    assert first == second
    assert first is not second


@pytest.mark.parametrize(
    ("kind", "payload"),
    [
        (EventKind.CONTENT, "68°F with \"quotes\"\nand a newline"),
        (EventKind.TOOL_CALL, {"id": "func_123", "name": "get_current_weather", "arguments": {"latitude": 37.7749}}),
        (EventKind.TOOL_RESULT, {"id": "1", "name": "w", "success": False, "result": None}),
        (EventKind.METADATA, {"finishReason": "stop", "tokens": {"total": 96}}),
    ],
)
def test_encoded_lines_decode_to_the_same_payload(kind, payload):
    for table in (COMPACT_TABLE, SEMANTIC_TABLE):
        line = encode_line(kind, payload, table)
        assert line.endswith("\n") and line.count("\n") == 1
        event = decode_line(line.rstrip("\n"), table)
        assert event.kind is kind
        assert event.payload == ParsedPayload(payload)
        again = decode_line(encode_line(kind, event.value, table).rstrip("\n"), table)
        assert again.payload == event.payload


def test_metadata_model_reads_camel_case():
    event = decode_line('e:{"finishReason":"length","tokens":45}', COMPACT_TABLE)
    meta = payload_model(event, StreamMetadata)
    assert meta.finish_reason == "length"
    assert meta.tokens == 45


def test_payload_model_rejects_raw_payload():
    event = decode_line("FUNC: nope", SEMANTIC_TABLE)
    with pytest.raises(ValueError):
        payload_model(event, ToolCall)


def test_numeric_tool_call_id_is_coerced():
    event = decode_line('9:{"id":7,"name":"f"}', COMPACT_TABLE)
    call = payload_model(event, ToolCall)
    assert call.id == "7"
    assert call.arguments == {}


def test_string_encoded_tool_arguments_are_parsed():
    event = decode_line('9:{"id":"c1","name":"f","arguments":"{\\"a\\": 1}"}', COMPACT_TABLE)
    call = payload_model(event, ToolCall)
    assert call.arguments == {"a": 1}


def test_error_event():
    event = make_error_event(RuntimeError("HTTP error! status: 500"))
    assert event.kind is EventKind.UNKNOWN
    assert event.prefix == "error"
    assert event.payload == RawPayload("Error: HTTP error! status: 500")


def test_encoded_content_is_json():
    line = encode_line(EventKind.CONTENT, "hi", SEMANTIC_TABLE)
    assert line == 'TEXT: "hi"\n'
    assert json.loads(line[len("TEXT: ") :]) == "hi"
    assert encode_line(EventKind.CONTENT, "hi", COMPACT_TABLE) == '0:"hi"\n'

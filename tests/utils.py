from __future__ import annotations

from typing import Iterable, List

SEMANTIC_SCENARIO = (
    'TEXT: "Hi"\n'
    'FUNC: {"id":"1","name":"get_current_weather","arguments":{}}\n'
    'RESP: {"id":"1","success":true,"result":{"temp":72}}\n'
    'META: {"finishReason":"stop"}\n'
)

COMPACT_SCENARIO = (
    '0:"A"\n'
    '9:{"id":"x","name":"unknown_fn","arguments":{}}\n'
    '0:"B"\n'
    'e:{"finishReason":"stop"}\n'
)


def split_at(data: bytes, cuts: Iterable[int]) -> List[bytes]:
    """Split ``data`` at the given offsets."""
    chunks: List[bytes] = []
    start = 0
    for cut in sorted(set(cuts)):
        chunks.append(data[start:cut])
        start = cut
    chunks.append(data[start:])
    return chunks

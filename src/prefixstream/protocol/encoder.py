"""Render events back into wire lines (used by the simulated stream)."""

from __future__ import annotations

import json
from typing import Any

from prefixstream.protocol.events import EventKind
from prefixstream.protocol.prefixes import PrefixTable


def encode_line(kind: EventKind, payload: Any, table: PrefixTable) -> str:
    """Return ``<prefix><separator><json>\\n`` for ``kind`` in ``table``.

    Raises ``KeyError`` when the variant has no prefix for ``kind`` (for
    instance ``DEBUG`` in the compact variant).
    """

    prefix = table.prefix_for(kind)
    return f"{prefix}{table.separator}{json.dumps(payload, ensure_ascii=False)}\n"

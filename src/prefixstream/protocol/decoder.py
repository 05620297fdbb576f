"""Classify raw lines by prefix and parse their payloads."""

from __future__ import annotations

import json
import logging

from prefixstream.log_utils import log_event, preview
from prefixstream.protocol.events import Event, EventKind, ParsedPayload, RawPayload
from prefixstream.protocol.prefixes import PrefixTable

logger = logging.getLogger(__name__)

ERROR_PREFIX = "error"


def decode_line(line: str, table: PrefixTable) -> Event:
    """Decode one line into an Event.

    Never raises for bad input: a line with no known prefix becomes an
    ``UNKNOWN`` event carrying the whole line, and a payload that is not JSON
    keeps its prefix kind with a ``RawPayload``.
    """

    matched = table.match(line)
    if matched is None:
        log_event(logger, "stream.line.unknown", level=logging.DEBUG, line=preview(line))
        return Event(kind=EventKind.UNKNOWN, payload=RawPayload(line), raw_line=line)

    prefix, kind = matched
    data = line[len(prefix) :].lstrip()
    try:
        payload: ParsedPayload | RawPayload = ParsedPayload(json.loads(data))
    except ValueError:
        log_event(
            logger,
            "stream.line.unparsed",
            level=logging.WARNING,
            kind=kind.value,
            payload=preview(data),
        )
        payload = RawPayload(data)
    return Event(kind=kind, payload=payload, raw_line=line, prefix=prefix)


def make_error_event(cause: BaseException | str) -> Event:
    """Synthetic event recording a transport failure in the session log."""
    message = f"Error: {cause}"
    return Event(kind=EventKind.UNKNOWN, payload=RawPayload(message), raw_line="", prefix=ERROR_PREFIX)

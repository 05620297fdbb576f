"""Prefix tables that map line prefixes to event kinds.

Two wire variants share the same decoder:

- ``compact``: ``0:`` content, ``9:`` tool call, ``a:`` tool result, ``e:`` metadata
- ``semantic``: ``TEXT:``, ``FUNC:``, ``RESP:``, ``META:`` and ``DEBUG:``
"""

from __future__ import annotations

from typing import Iterable, Iterator, Mapping, Tuple

from prefixstream.errors import PrefixTableError
from prefixstream.protocol.events import EventKind


class PrefixTable:
    """An immutable prefix -> kind mapping with longest-prefix lookup.

    Construction rejects tables where one prefix starts another, so a lookup
    can never depend on check order.
    """

    def __init__(
        self,
        name: str,
        entries: Mapping[str, EventKind] | Iterable[Tuple[str, EventKind]],
        *,
        separator: str = "",
    ) -> None:
        pairs = list(entries.items()) if isinstance(entries, Mapping) else list(entries)
        if not pairs:
            raise PrefixTableError(f"prefix table {name!r} is empty")
        seen: set[str] = set()
        for prefix, kind in pairs:
            if not prefix:
                raise PrefixTableError(f"prefix table {name!r} contains an empty prefix")
            if prefix in seen:
                raise PrefixTableError(f"prefix table {name!r} repeats prefix {prefix!r}")
            if kind is EventKind.UNKNOWN:
                raise PrefixTableError(f"prefix {prefix!r} cannot map to the unknown kind")
            seen.add(prefix)
        for prefix, _ in pairs:
            for other, _ in pairs:
                if other != prefix and other.startswith(prefix):
                    raise PrefixTableError(
                        f"prefix table {name!r} is ambiguous: {prefix!r} is a prefix of {other!r}"
                    )

        self.name = name
        self.separator = separator
        self._entries: Tuple[Tuple[str, EventKind], ...] = tuple(pairs)
        self._by_length = tuple(sorted(pairs, key=lambda pair: len(pair[0]), reverse=True))

    def match(self, line: str) -> Tuple[str, EventKind] | None:
        """Return the longest ``(prefix, kind)`` that ``line`` starts with."""
        for prefix, kind in self._by_length:
            if line.startswith(prefix):
                return prefix, kind
        return None

    def prefix_for(self, kind: EventKind) -> str:
        for prefix, entry_kind in self._entries:
            if entry_kind is kind:
                return prefix
        raise KeyError(f"{self.name} variant has no prefix for {kind.value}")

    def kinds(self) -> Tuple[EventKind, ...]:
        return tuple(kind for _, kind in self._entries)

    def __iter__(self) -> Iterator[Tuple[str, EventKind]]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        prefixes = ", ".join(prefix for prefix, _ in self._entries)
        return f"PrefixTable({self.name!r}: {prefixes})"


COMPACT_TABLE = PrefixTable(
    "compact",
    {
        "0:": EventKind.CONTENT,
        "9:": EventKind.TOOL_CALL,
        "a:": EventKind.TOOL_RESULT,
        "e:": EventKind.METADATA,
    },
)

SEMANTIC_TABLE = PrefixTable(
    "semantic",
    {
        "TEXT:": EventKind.CONTENT,
        "FUNC:": EventKind.TOOL_CALL,
        "RESP:": EventKind.TOOL_RESULT,
        "META:": EventKind.METADATA,
        "DEBUG:": EventKind.DEBUG,
    },
    separator=" ",
)

VARIANTS: dict[str, PrefixTable] = {
    COMPACT_TABLE.name: COMPACT_TABLE,
    SEMANTIC_TABLE.name: SEMANTIC_TABLE,
}


def get_table(variant: str) -> PrefixTable:
    try:
        return VARIANTS[variant]
    except KeyError:
        raise KeyError(f"Unknown protocol variant: {variant}") from None

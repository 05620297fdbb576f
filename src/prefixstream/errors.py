"""Exception types raised by prefixstream."""

from __future__ import annotations


class PrefixStreamError(Exception):
    """Base class for all prefixstream errors."""


class PrefixTableError(PrefixStreamError, ValueError):
    """Raised when a prefix table is empty or contains ambiguous prefixes."""


class ConfigError(PrefixStreamError, ValueError):
    """Raised when settings cannot be resolved into a usable configuration."""


class TransportError(PrefixStreamError):
    """Raised by a chunk source when the underlying transport fails.

    ``status_code`` is set for non-success HTTP responses and is ``None`` for
    network-level failures.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

"""Logging for stream runs: a rotating log file with one line per dotted event.

Every record carries the active stream's ``session_id`` and ``variant`` as
first-class fields (set with ``log_context``). Event namespaces can be given
their own minimum level, so a single noisy namespace can be opened up without
lowering the level for everything else::

    PREFIXSTREAM_LOG_EVENTS="stream.line=debug,transport=warning"

Raw chunk events (``stream.chunk``) stay off unless ``PREFIXSTREAM_LOG_CHUNKS``
is set or the namespace is listed explicitly.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping

from prefixstream.paths import log_dir

ENV_PREFIX = "PREFIXSTREAM_"
DEFAULT_LOG_MAX_BYTES = 2_000_000
DEFAULT_LOG_BACKUPS = 3
PREVIEW_LIMIT = 160

CHUNK_EVENT = "stream.chunk"
DEFAULT_EVENT_LEVELS: Dict[str, int] = {CHUNK_EVENT: logging.WARNING}
LIBRARY_LEVELS: Dict[str, int] = {"httpx": logging.WARNING, "httpcore": logging.WARNING}

_LOG_CONTEXT: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "prefixstream_log_context", default={}
)


class EventLevels:
    """Minimum level per dotted event namespace, longest namespace wins."""

    def __init__(self, default: int, levels: Mapping[str, int] | None = None) -> None:
        self.default = default
        self.levels = dict(levels or {})

    def threshold(self, event: str) -> int:
        best = ""
        for namespace in self.levels:
            if (event == namespace or event.startswith(namespace + ".")) and len(namespace) > len(best):
                best = namespace
        return self.levels[best] if best else self.default

    def allows(self, event: str, level: int) -> bool:
        return level >= self.threshold(event)

    @property
    def floor(self) -> int:
        return min([self.default, *self.levels.values()])


_ACTIVE_LEVELS = EventLevels(logging.INFO, DEFAULT_EVENT_LEVELS)


@dataclass(frozen=True)
class LogConfig:
    log_file: Path
    level: int = logging.INFO
    stderr: bool = False
    json: bool = False
    max_bytes: int = DEFAULT_LOG_MAX_BYTES
    backup_count: int = DEFAULT_LOG_BACKUPS
    event_levels: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_EVENT_LEVELS))
    library_levels: Dict[str, int] = field(default_factory=lambda: dict(LIBRARY_LEVELS))

    @property
    def events(self) -> EventLevels:
        return EventLevels(self.level, self.event_levels)


def _env(name: str) -> str | None:
    return os.getenv(f"{ENV_PREFIX}{name}")


def parse_level(value: str | None, default: int) -> int:
    """Turn ``"debug"``/``"10"`` style values into a logging level."""
    if not value:
        return default
    value = value.strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else default


def parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    with contextlib.suppress(ValueError):
        return int(value)
    return default


def parse_event_levels(value: str | None) -> Dict[str, int]:
    """Parse ``"stream.line=debug, transport=30"``; malformed entries are skipped."""
    levels: Dict[str, int] = {}
    for entry in (value or "").split(","):
        namespace, sep, raw_level = entry.partition("=")
        namespace = namespace.strip()
        if not sep or not namespace:
            continue
        level = parse_level(raw_level, -1)
        if level >= 0:
            levels[namespace] = level
    return levels


def build_log_config(*, log_file_name: str, default_level: int = logging.INFO) -> LogConfig:
    """Build a LogConfig from ``PREFIXSTREAM_LOG_*`` environment variables.

    The log file lives in the platform log directory unless
    ``PREFIXSTREAM_LOG_DIR`` points somewhere else.
    """

    directory = Path(_env("LOG_DIR") or str(log_dir()))
    directory.mkdir(parents=True, exist_ok=True)

    event_levels = {**DEFAULT_EVENT_LEVELS, **parse_event_levels(_env("LOG_EVENTS"))}
    if parse_bool(_env("LOG_CHUNKS"), False):
        event_levels[CHUNK_EVENT] = logging.DEBUG

    return LogConfig(
        log_file=directory / log_file_name,
        level=parse_level(_env("LOG_LEVEL"), default_level),
        stderr=parse_bool(_env("LOG_STDERR"), False),
        json=parse_bool(_env("LOG_JSON"), False),
        max_bytes=parse_int(_env("LOG_MAX_BYTES"), DEFAULT_LOG_MAX_BYTES),
        backup_count=parse_int(_env("LOG_BACKUPS"), DEFAULT_LOG_BACKUPS),
        event_levels=event_levels,
    )


def configure_logging(config: LogConfig) -> None:
    """Replace the root handlers with the stream log file (and optional stderr).

    The root level is lowered to the most verbose event namespace; the
    per-namespace filter on each handler does the rest.
    """

    global _ACTIVE_LEVELS
    _ACTIVE_LEVELS = config.events

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(_ACTIVE_LEVELS.floor)

    formatter: logging.Formatter = StreamJsonFormatter() if config.json else StreamTextFormatter()
    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            config.log_file,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    ]
    if config.stderr:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(StreamRecordFilter(_ACTIVE_LEVELS))
        root_logger.addHandler(handler)

    for name, level in config.library_levels.items():
        logging.getLogger(name).setLevel(level)


def log_chunks_enabled() -> bool:
    """True when ``stream.chunk`` debug records would be written."""
    return _ACTIVE_LEVELS.allows(CHUNK_EVENT, logging.DEBUG)


@contextlib.contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Attach ``session_id``, ``variant`` or other fields to records logged in the block."""

    current = _LOG_CONTEXT.get()
    merged = {**current, **{k: v for k, v in fields.items() if v is not None}}
    token = _LOG_CONTEXT.set(merged)
    try:
        yield
    finally:
        _LOG_CONTEXT.reset(token)


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Log a dotted event name such as ``stream.line.unknown`` with fields."""

    logger.log(level, event, extra={"event_fields": fields})


def preview(text: str, limit: int = PREVIEW_LIMIT) -> str:
    """Clip a raw line for log output."""
    if len(text) <= limit:
        return text
    return text[:limit] + f"...(+{len(text) - limit})"


def _field_text(value: Any) -> str:
    if isinstance(value, str) and value and not any(ch.isspace() or ch in '="' for ch in value):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


class StreamRecordFilter(logging.Filter):
    """Drop records below their namespace level and attach the stream context."""

    def __init__(self, levels: EventLevels) -> None:
        super().__init__()
        self.levels = levels

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 - logging API name
        if isinstance(record.msg, str) and not self.levels.allows(record.msg, record.levelno):
            return False
        context = dict(_LOG_CONTEXT.get())
        record.session_id = context.pop("session_id", None)
        record.variant = context.pop("variant", None)
        fields = {**context, **getattr(record, "event_fields", {})}
        record.event_fields = {k: v for k, v in fields.items() if v is not None}
        return True


class StreamTextFormatter(logging.Formatter):
    """``time LEVEL logger [session variant] event key=value ...``

    Only the first eight characters of the session id are shown.
    """

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s [%(stream_tag)s] %(message)s%(field_text)s")

    def format(self, record: logging.LogRecord) -> str:
        session_id = getattr(record, "session_id", None)
        record.stream_tag = f"{session_id[:8] if session_id else '-'} {getattr(record, 'variant', None) or '-'}"
        fields = getattr(record, "event_fields", {})
        record.field_text = "".join(f" {key}={_field_text(fields[key])}" for key in sorted(fields))
        return super().format(record)


class StreamJsonFormatter(logging.Formatter):
    """One JSON object per record with the event name and stream context at top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        for key in ("session_id", "variant"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        fields = getattr(record, "event_fields", {})
        if fields:
            payload["fields"] = fields
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)

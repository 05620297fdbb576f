"""Runtime settings for stream commands.

Values are resolved in order: built-in defaults, ``<config_dir>/.env``, a
``.env`` in the working directory, ``PREFIXSTREAM_*`` environment variables,
and finally explicit overrides passed by the CLI.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

from prefixstream.errors import ConfigError
from prefixstream.log_utils import ENV_PREFIX, log_event
from prefixstream.paths import config_dir
from prefixstream.protocol.prefixes import VARIANTS

logger = logging.getLogger(__name__)

ENV_FILE_NAME = ".env"

DEFAULT_ENDPOINT = "http://localhost:3000/api/chat"
DEFAULT_VARIANT = "compact"
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_CHUNK_DELAY = 0.3


def env_file() -> Path:
    """User-level .env, read before the working directory one."""
    return config_dir() / ENV_FILE_NAME


@dataclass(frozen=True)
class StreamSettings:
    endpoint: str = DEFAULT_ENDPOINT
    variant: str = DEFAULT_VARIANT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    # None leaves the stream open until the server closes it.
    read_timeout: float | None = None
    chunk_delay: float = DEFAULT_CHUNK_DELAY
    headers: Dict[str, str] = field(default_factory=dict)


def _float_env(name: str, default: float | None) -> float | None:
    raw = os.getenv(f"{ENV_PREFIX}{name}")
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        log_event(logger, "config.invalid_float", level=logging.WARNING, name=name, value=raw)
        return default


def _headers_env() -> Dict[str, str]:
    raw = os.getenv(f"{ENV_PREFIX}HEADERS")
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{ENV_PREFIX}HEADERS is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{ENV_PREFIX}HEADERS must be a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def load_settings(**overrides: Any) -> StreamSettings:
    """Resolve StreamSettings; ``None`` overrides are ignored."""

    load_dotenv(env_file(), override=False)
    load_dotenv()

    settings = StreamSettings(
        endpoint=os.getenv(f"{ENV_PREFIX}ENDPOINT") or DEFAULT_ENDPOINT,
        variant=os.getenv(f"{ENV_PREFIX}VARIANT") or DEFAULT_VARIANT,
        connect_timeout=_float_env("CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT) or DEFAULT_CONNECT_TIMEOUT,
        read_timeout=_float_env("READ_TIMEOUT", None),
        chunk_delay=_float_env("CHUNK_DELAY", DEFAULT_CHUNK_DELAY) or 0.0,
        headers=_headers_env(),
    )
    applied = {k: v for k, v in overrides.items() if v is not None}
    if applied:
        settings = replace(settings, **applied)

    if settings.variant not in VARIANTS:
        raise ConfigError(
            f"Unknown protocol variant: {settings.variant} (expected one of {', '.join(sorted(VARIANTS))})"
        )
    return settings

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_home(tmp_path_factory, monkeypatch):
    """Point HOME/XDG dirs at a temp dir so config, state and logs stay out of the real home."""
    base = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(base))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(base / ".config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(base / ".local" / "state"))
    monkeypatch.setenv("XDG_DATA_HOME", str(base / ".local" / "share"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(base / ".cache"))
    monkeypatch.setattr(Path, "home", lambda: base)
    for name in (
        "ENDPOINT",
        "VARIANT",
        "CONNECT_TIMEOUT",
        "READ_TIMEOUT",
        "CHUNK_DELAY",
        "HEADERS",
        "LOG_DIR",
        "LOG_LEVEL",
        "LOG_EVENTS",
        "LOG_CHUNKS",
        "LOG_JSON",
        "LOG_STDERR",
    ):
        monkeypatch.setenv(f"PREFIXSTREAM_{name}", "")
        monkeypatch.delenv(f"PREFIXSTREAM_{name}")

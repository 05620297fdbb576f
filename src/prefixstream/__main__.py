"""Module entrypoint for ``python -m prefixstream``."""

from __future__ import annotations

from prefixstream.cli import main_entry

if __name__ == "__main__":
    raise SystemExit(main_entry())

"""Command line entry point: ``chat``, ``demo`` and ``decode``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence

from prefixstream.config import load_settings
from prefixstream.display import ConsoleRenderer, render_event_table, render_summary
from prefixstream.errors import ConfigError
from prefixstream.log_utils import build_log_config, configure_logging, log_event
from prefixstream.protocol.prefixes import VARIANTS, get_table
from prefixstream.repl import http_source, interactive_loop, stream_to_console
from prefixstream.session.dispatcher import StreamDispatcher
from prefixstream.session.state import SessionState, StreamSession
from prefixstream.tools import default_registry
from prefixstream.transport import FileChunkSource, SimulatedChunkSource

logger = logging.getLogger(__name__)

EXIT_CODES = {
    SessionState.COMPLETED: 0,
    SessionState.ERRORED: 1,
    SessionState.ABORTED: 130,
}


def exit_code(session: StreamSession) -> int:
    return EXIT_CODES.get(session.state, 1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prefixstream", description="Decode prefix-tagged chat streams.")
    parser.add_argument("--variant", choices=sorted(VARIANTS), help="Protocol variant (default from settings).")
    parser.add_argument("--events", action="store_true", help="Print every decoded event as it arrives.")
    sub = parser.add_subparsers(dest="command", required=True)

    chat = sub.add_parser("chat", help="Stream replies from a chat endpoint.")
    chat.add_argument("--url", dest="endpoint", help="Chat endpoint URL.")
    chat.add_argument("-m", "--message", help="Send one message and exit instead of starting a prompt.")
    chat.add_argument("--read-timeout", type=float, help="Seconds to wait for each chunk.")

    demo = sub.add_parser("demo", help="Replay the simulated weather conversation.")
    demo.add_argument("--delay", dest="chunk_delay", type=float, help="Seconds between chunks.")

    decode = sub.add_parser("decode", help="Decode a captured stream body from a file.")
    decode.add_argument("path", help="File containing raw stream bytes.")
    decode.add_argument("--chunk-size", type=int, default=4096)
    return parser


async def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(build_log_config(log_file_name="prefixstream.log"))

    try:
        settings = load_settings(
            variant=args.variant,
            endpoint=getattr(args, "endpoint", None),
            read_timeout=getattr(args, "read_timeout", None),
            chunk_delay=getattr(args, "chunk_delay", None),
        )
    except ConfigError as exc:
        print(f"prefixstream: {exc}", file=sys.stderr)
        return 2

    log_event(logger, "cli.start", command=args.command, variant=settings.variant)
    renderer = ConsoleRenderer(show_events=args.events)
    registry = default_registry()
    table = get_table(settings.variant)

    if args.command == "chat" and not args.message:
        return await interactive_loop(settings, registry, renderer)

    dispatcher = StreamDispatcher(registry, renderer)
    if args.command == "chat":
        source = http_source(settings, args.message)
    elif args.command == "demo":
        source = SimulatedChunkSource.demo(table, delay=settings.chunk_delay)
    else:
        source = FileChunkSource(args.path, chunk_size=args.chunk_size)

    session = await stream_to_console(source, settings.variant, dispatcher)
    if args.command == "decode":
        renderer.console.print(render_event_table(session.events))
    renderer.console.print(render_summary(session))
    return exit_code(session)


def main_entry() -> int:
    try:
        return asyncio.run(main())
    except KeyboardInterrupt:
        return 130

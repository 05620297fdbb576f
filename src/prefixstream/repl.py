"""Interactive prompt loop: one stream per message."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Iterator

from prompt_toolkit import PromptSession  # type: ignore
from prompt_toolkit.key_binding import KeyBindings  # type: ignore

from prefixstream.config import StreamSettings
from prefixstream.display import ConsoleRenderer, render_summary
from prefixstream.log_utils import log_event
from prefixstream.protocol.prefixes import VARIANTS, get_table
from prefixstream.runner import StreamRunner
from prefixstream.session.dispatcher import StreamDispatcher
from prefixstream.session.state import StreamSession
from prefixstream.tools import FunctionRegistry
from prefixstream.transport import ChunkSource, HttpChunkSource, chat_request_body

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def _interrupt_cancels(runner: StreamRunner) -> Iterator[None]:
    """Route Ctrl-C to ``runner.cancel`` while a stream is running."""
    loop = asyncio.get_running_loop()
    installed = False
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, runner.cancel)
        installed = True
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def stream_to_console(
    source: ChunkSource,
    variant: str,
    dispatcher: StreamDispatcher,
) -> StreamSession:
    """Run one stream with Ctrl-C cancellation and wait for tool calls to settle."""
    runner = StreamRunner(source, get_table(variant), dispatcher)
    with _interrupt_cancels(runner):
        session = await runner.run()
    await dispatcher.wait_for_tools()
    return session


def http_source(settings: StreamSettings, message: str) -> HttpChunkSource:
    return HttpChunkSource(
        settings.endpoint,
        chat_request_body(message),
        headers=settings.headers,
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
    )


def _handle_slash(line: str, renderer: ConsoleRenderer, dispatcher: StreamDispatcher, variant: str) -> str:
    """Apply a ``/command`` and return the (possibly changed) variant."""
    parts = line.split()
    command = parts[0]
    if command == "/clear":
        dispatcher.reset()
        renderer.console.print("[cleared]", style="magenta")
    elif command == "/events":
        renderer.show_events = not renderer.show_events
        renderer.console.print(f"[events {'on' if renderer.show_events else 'off'}]", style="magenta")
    elif command == "/variant":
        if len(parts) == 2 and parts[1] in VARIANTS:
            variant = parts[1]
        renderer.console.print(f"[variant: {variant}; available: {', '.join(sorted(VARIANTS))}]", style="magenta")
    elif command == "/status":
        renderer.console.print(render_summary(dispatcher.session))
    else:
        renderer.console.print(f"[unknown command: {command}]", style="red")
    return variant


async def interactive_loop(
    settings: StreamSettings,
    registry: FunctionRegistry,
    renderer: ConsoleRenderer,
) -> int:
    """Prompt for messages and stream each reply until ``exit``."""
    kb = KeyBindings()
    CANCEL_TOKEN = "__CANCEL__"

    @kb.add("escape")
    def _(event):  # type: ignore
        if not event.app.is_done:
            event.app.exit(result=CANCEL_TOKEN)

    prompt: PromptSession = PromptSession(key_bindings=kb)
    dispatcher = StreamDispatcher(registry, renderer)
    variant = settings.variant

    while True:
        try:
            line = await prompt.prompt_async(f"{variant}> ")
        except EOFError:
            break
        except KeyboardInterrupt:
            continue
        if line == CANCEL_TOKEN or not line.strip():
            continue
        if line.strip().lower() in {"exit", "quit"}:
            break
        if line.startswith("/"):
            variant = _handle_slash(line.strip(), renderer, dispatcher, variant)
            continue

        log_event(logger, "repl.message", chars=len(line), variant=variant)
        await stream_to_console(http_source(settings, line), variant, dispatcher)
        renderer.pending_newline = False
    return 0

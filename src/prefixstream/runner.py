"""Cooperative read loop: chunks -> lines -> events -> dispatcher."""

from __future__ import annotations

import asyncio
import logging

from prefixstream.errors import TransportError
from prefixstream.log_utils import log_context, log_event
from prefixstream.protocol.decoder import decode_line
from prefixstream.protocol.prefixes import PrefixTable
from prefixstream.protocol.reassembler import LineReassembler
from prefixstream.session.dispatcher import StreamDispatcher
from prefixstream.session.state import StreamSession
from prefixstream.transport.base import ChunkSource

logger = logging.getLogger(__name__)


class StreamRunner:
    """Drive one chunk source through a dispatcher until a terminal state.

    Decoding and dispatch happen synchronously between reads. ``cancel`` may
    be called from another task or a signal handler: a read that is still
    waiting is abandoned at once, whatever is still buffered is discarded and
    the session ends ``Aborted``. Any failure raised by the source ends the
    session ``Errored`` instead of propagating. There is no timeout here;
    pass one to the source or wrap ``run``.
    """

    def __init__(self, source: ChunkSource, table: PrefixTable, dispatcher: StreamDispatcher) -> None:
        self.source = source
        self.table = table
        self.dispatcher = dispatcher
        self._cancelled = False
        self._cancel_event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self.source.cancel()
        self._cancel_event.set()

    async def run(self) -> StreamSession:
        session = self.dispatcher.start()
        with log_context(session_id=session.session_id, variant=self.table.name):
            try:
                await self._read_loop()
            except asyncio.CancelledError:
                self.dispatcher.abort()
                raise
            finally:
                await self.source.aclose()
        return self.dispatcher.session

    async def _read_chunk(self) -> bytes | None:
        """Await the next chunk, or give up on it as soon as ``cancel`` is called."""
        read_task = asyncio.create_task(self.source.read_next_chunk())
        cancel_task = asyncio.create_task(self._cancel_event.wait())
        try:
            await asyncio.wait({read_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not read_task.done():
                read_task.cancel()
                await asyncio.gather(read_task, return_exceptions=True)
        if read_task.cancelled():
            return None
        return read_task.result()

    async def _read_loop(self) -> None:
        reassembler = LineReassembler()
        while True:
            if self._stop_requested(reassembler):
                return
            try:
                chunk = await self._read_chunk()
            except Exception as exc:
                if self._stop_requested(reassembler):
                    return
                if not isinstance(exc, TransportError):
                    logger.exception("transport.read.failed")
                reassembler.discard()
                self.dispatcher.fail(exc)
                return
            if self._stop_requested(reassembler):
                return

            lines = reassembler.feed(chunk) if chunk is not None else reassembler.close()
            for line in lines:
                if self._stop_requested(reassembler):
                    return
                self.dispatcher.dispatch(decode_line(line, self.table))
                if self.dispatcher.state.is_terminal:
                    reassembler.discard()
                    self.source.cancel()
                    return

            if chunk is None:
                self.dispatcher.complete()
                return

    def _stop_requested(self, reassembler: LineReassembler) -> bool:
        if not self._cancelled:
            return False
        log_event(logger, "stream.cancelled", buffered=len(reassembler.pending))
        reassembler.discard()
        self.dispatcher.abort()
        return True


async def run_stream(source: ChunkSource, table: PrefixTable, dispatcher: StreamDispatcher) -> StreamSession:
    """Run ``source`` to completion and return the final session."""
    return await StreamRunner(source, table, dispatcher).run()

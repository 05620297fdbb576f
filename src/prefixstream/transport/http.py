"""Stream a chat response body over HTTP with httpx."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict

import httpx

from prefixstream.errors import TransportError
from prefixstream.log_utils import log_event

logger = logging.getLogger(__name__)

USER_AGENT = "prefixstream/0.1"


def chat_request_body(message: str) -> Dict[str, Any]:
    return {"messages": [{"role": "user", "content": message}]}


class HttpChunkSource:
    """POST a chat request and expose the response body as chunks.

    The request is sent lazily on the first ``read_next_chunk`` call. A
    client passed in by the caller is left open; otherwise one is created and
    closed by ``aclose``.
    """

    def __init__(
        self,
        endpoint: str,
        body: Dict[str, Any],
        *,
        client: httpx.AsyncClient | None = None,
        headers: Dict[str, str] | None = None,
        connect_timeout: float = 10.0,
        read_timeout: float | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.body = body
        self.headers = {"User-Agent": USER_AGENT, "Accept": "text/plain, */*", **(headers or {})}
        self._client = client
        self._owns_client = client is None
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._response: httpx.Response | None = None
        self._chunks: AsyncIterator[bytes] | None = None
        self._cancelled = False

    async def _open(self) -> AsyncIterator[bytes]:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        request = self._client.build_request("POST", self.endpoint, json=self.body, headers=self.headers)
        log_event(logger, "transport.http.request", url=self.endpoint)
        try:
            response = await self._client.send(request, stream=True)
        except (httpx.HTTPError, OSError) as exc:
            raise TransportError(f"request to {self.endpoint} failed: {exc}") from exc
        self._response = response
        if not response.is_success:
            await response.aclose()
            raise TransportError(f"HTTP error! status: {response.status_code}", status_code=response.status_code)
        log_event(logger, "transport.http.open", status=response.status_code)
        return response.aiter_bytes()

    async def read_next_chunk(self) -> bytes | None:
        if self._cancelled:
            return None
        if self._chunks is None:
            self._chunks = await self._open()
            if self._cancelled:
                await self._close_response()
                return None
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            return None
        except (httpx.HTTPError, httpx.StreamError, OSError) as exc:
            if self._cancelled:
                return None
            raise TransportError(f"stream from {self.endpoint} failed: {exc}") from exc

    def cancel(self) -> None:
        """Stop handing out chunks.

        A read already waiting on the network is not interrupted here; the
        caller cancels the task awaiting it, as ``StreamRunner`` does.
        """
        if self._cancelled:
            return
        self._cancelled = True
        log_event(logger, "transport.http.cancel", url=self.endpoint)

    async def _close_response(self) -> None:
        if self._response is not None:
            await self._response.aclose()

    async def aclose(self) -> None:
        await self._close_response()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

"""Streaming HTTP transport for the live feed."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager
from typing import Protocol

import aiohttp

from trainfusion.exceptions import FeedTransportError

_logger = logging.getLogger(__name__)

USER_AGENT = "trainfusion/1.0"


class StreamTransport(Protocol):
    """Structural transport interface used by the feed client.

    Entering the context opens the connection; the yielded iterator
    produces raw body chunks until the server closes the stream. Failures
    surface as :class:`FeedTransportError`.
    """

    def open(self, url: str) -> AbstractAsyncContextManager[AsyncIterator[bytes]]:
        ...


class AiohttpStreamTransport:
    """Event-stream GET over an :class:`aiohttp.ClientSession`."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        connect_timeout: float,
        read_timeout: float,
    ) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=None, connect=connect_timeout, sock_read=read_timeout)

    @contextlib.asynccontextmanager
    async def open(self, url: str) -> AsyncIterator[AsyncIterator[bytes]]:
        headers = {
            "accept": "text/event-stream",
            "cache-control": "no-cache",
            "user-agent": USER_AGENT,
        }
        _logger.debug("GET %s (stream)", url)
        try:
            async with self._http.get(url, headers=headers, timeout=self._timeout) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise FeedTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
                yield self._iter_body(resp, url)
        except FeedTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FeedTransportError(f"Stream from {url} failed: {exc!r}", url=url) from exc

    @staticmethod
    async def _iter_body(resp: aiohttp.ClientResponse, url: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.content.iter_any():
                yield chunk
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FeedTransportError(f"Stream from {url} interrupted: {exc!r}", url=url) from exc

"""Live feed client.

Owns one streaming connection and its reconnect policy, and delivers typed
events on a single-consumer queue:

``Disconnected -> Connecting -> Connected -> (error) Reconnecting -> Connecting -> ...``

Reconnects use a fixed delay with no backoff growth, jitter or attempt
cap. Only :meth:`LiveFeedClient.disconnect` ends the cycle.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from trainfusion._sse import SseEvent, SseDecoder
from trainfusion._time import local_now
from trainfusion._transport import StreamTransport
from trainfusion.exceptions import FeedStateError, FeedTransportError, SnapshotParseError
from trainfusion.ingestion.snapshot import parse_snapshot
from trainfusion.state.events import (
    Connected,
    FeedEvent,
    HeartbeatReceived,
    SnapshotReceived,
    SnapshotRejected,
    TransportError,
)

_logger = logging.getLogger(__name__)

SNAPSHOT_EVENT = "snapshot"
HEARTBEAT_EVENTS = frozenset({"heartbeat", "ping"})


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class LiveFeedClient:
    """Streaming feed connection with fixed-delay reconnection.

    Must be used from within a running asyncio event loop.
    """

    def __init__(
        self,
        transport: StreamTransport,
        *,
        reconnect_delay: float = 5.0,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._transport = transport
        self._reconnect_delay = reconnect_delay
        self._clock = clock
        self._state = ConnectionState.DISCONNECTED
        self._url: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._events: asyncio.Queue[FeedEvent] = asyncio.Queue()
        self._attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def url(self) -> str | None:
        return self._url

    @property
    def attempts(self) -> int:
        """Connection attempts started since construction."""
        return self._attempts

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self, url: str) -> None:
        """Start connecting to *url*. Only valid while disconnected."""
        if self._state is not ConnectionState.DISCONNECTED:
            raise FeedStateError(f"connect() called while {self._state.value}")
        self._url = url
        _logger.info("Connecting to live feed %s", url)
        self._start_attempt()

    async def disconnect(self) -> None:
        """Close the stream, cancel any pending reconnect and drop queued events.

        Safe to call in any state, any number of times.
        """
        was = self._state
        self._state = ConnectionState.DISCONNECTED
        self._cancel_reconnect()

        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        self._drain()
        if was is not ConnectionState.DISCONNECTED:
            _logger.info("Disconnected from live feed %s", self._url)

    # ------------------------------------------------------------------
    # Event channel
    # ------------------------------------------------------------------

    async def next_event(self) -> FeedEvent:
        """Wait for the next event. Single consumer only."""
        return await self._events.get()

    def pending_events(self) -> int:
        return self._events.qsize()

    def _emit(self, event: FeedEvent) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            return
        self._events.put_nowait(event)

    def _drain(self) -> None:
        while True:
            try:
                self._events.get_nowait()
            except asyncio.QueueEmpty:
                return

    # ------------------------------------------------------------------
    # Connection attempts
    # ------------------------------------------------------------------

    def _start_attempt(self) -> None:
        assert self._url is not None  # noqa: S101
        self._state = ConnectionState.CONNECTING
        self._attempts += 1
        self._task = asyncio.get_running_loop().create_task(self._run(self._url))

    async def _run(self, url: str) -> None:
        try:
            async with self._transport.open(url) as chunks:
                self._on_connected(url)
                decoder = SseDecoder()
                async for chunk in chunks:
                    _logger.debug("Received %d bytes from live feed", len(chunk))
                    for sse in decoder.feed(chunk):
                        self._dispatch(sse)
            raise FeedTransportError(f"Stream from {url} closed by server", url=url)
        except (FeedTransportError, OSError) as exc:
            self._on_transport_error(exc)
        except Exception as exc:  # noqa: BLE001
            # Event handling never raises; anything else came from the transport.
            _logger.exception("Unexpected live feed stream failure")
            self._on_transport_error(exc)

    def _on_connected(self, url: str) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            return
        self._cancel_reconnect()
        self._state = ConnectionState.CONNECTED
        _logger.info("Live feed connected %s", url)
        self._emit(Connected(url=url))

    def _on_transport_error(self, exc: Exception) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            return
        _logger.warning("Live feed error, reconnecting in %.1fs: %s", self._reconnect_delay, exc)
        self._emit(TransportError(error=str(exc), retry_in=self._reconnect_delay))
        self._state = ConnectionState.RECONNECTING
        self._cancel_reconnect()
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self._reconnect_delay, self._reconnect)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if self._state is not ConnectionState.RECONNECTING:
            return
        _logger.debug("Reconnecting to live feed %s", self._url)
        self._start_attempt()

    def _cancel_reconnect(self) -> None:
        handle = self._reconnect_handle
        self._reconnect_handle = None
        if handle is not None:
            handle.cancel()

    # ------------------------------------------------------------------
    # Event parsing
    # ------------------------------------------------------------------

    def _dispatch(self, sse: SseEvent) -> None:
        if sse.event == SNAPSHOT_EVENT:
            try:
                snapshot = parse_snapshot(sse.data, received_at=self._clock().timestamp())
            except SnapshotParseError as exc:
                _logger.warning("Ignoring malformed snapshot: %s", exc)
                self._emit(SnapshotRejected(error=str(exc)))
                return
            except Exception as exc:  # noqa: BLE001
                _logger.warning("Ignoring unparseable snapshot", exc_info=True)
                self._emit(SnapshotRejected(error=f"{type(exc).__name__}: {exc}"))
                return
            self._emit(SnapshotReceived(snapshot=snapshot))
            return
        if sse.event in HEARTBEAT_EVENTS:
            _logger.debug("Live feed heartbeat")
            self._emit(HeartbeatReceived(received_at=self._clock()))
            return
        _logger.debug("Ignoring live feed event %r", sse.event)

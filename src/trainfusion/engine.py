"""High-level async engine fusing the timetable with the live feed."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any

import aiohttp

from trainfusion._time import local_now, seconds_of_day
from trainfusion._transport import AiohttpStreamTransport, StreamTransport
from trainfusion.config import FusionConfig
from trainfusion.exceptions import TrainFusionError
from trainfusion.feed import ConnectionState, LiveFeedClient
from trainfusion.fusion import timetable_position
from trainfusion.models.position import ResolvedPosition
from trainfusion.schedule import ScheduleStore
from trainfusion.scheduler import RecomputeScheduler, compute_positions
from trainfusion.state.events import (
    Connected,
    FeedEvent,
    HeartbeatReceived,
    SnapshotReceived,
    SnapshotRejected,
    TransportError,
)
from trainfusion.state.store import FusionState

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineDebugSnapshot:
    """Read-only view of engine internals for diagnostics."""

    connection_state: ConnectionState
    feed_url: str | None
    tracked_trips: int
    published_trips: int
    last_sequence: int | None
    snapshots_applied: int
    snapshots_rejected: int
    last_heartbeat_at: datetime | None


class TrainFusionEngine:
    """Live train positions from a timetable plus a streaming feed.

    Usage::

        store = load_gtfs_json("gtfs/")
        async with TrainFusionEngine(store, FusionConfig.from_env()) as engine:
            await engine.connect()
            ...
            positions = engine.current_positions()
    """

    def __init__(
        self,
        schedule: ScheduleStore,
        config: FusionConfig | None = None,
        *,
        transport: StreamTransport | None = None,
        http_session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._schedule = schedule
        self._config = config or FusionConfig()
        self._transport = transport
        self._external_session = http_session is not None
        self._http_session = http_session
        self._clock = clock
        self._fusion_state = FusionState(ttl=timedelta(seconds=self._config.ttl_seconds))
        self._positions: Mapping[str, ResolvedPosition] = MappingProxyType({})
        self._feed: LiveFeedClient | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._scheduler = RecomputeScheduler(self.tick, interval=self._config.tick_interval)
        self._rejected = 0
        self._last_heartbeat_at: datetime | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TrainFusionEngine:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Disconnect and release the HTTP session if the engine created it."""
        await self.disconnect()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None
            self._feed = None

    # ------------------------------------------------------------------
    # Connection control
    # ------------------------------------------------------------------

    async def connect(self, url: str | None = None) -> None:
        """Open the live feed and start the recompute loop.

        *url* defaults to ``config.feed_url``.
        """
        feed = self._ensure_feed()
        feed.connect(url or self._config.feed_url)
        self._consumer = asyncio.get_running_loop().create_task(self._consume(feed))
        self._scheduler.start()

    async def disconnect(self) -> None:
        """Close the feed, stop the loop and clear live state. Idempotent."""
        if self._feed is not None:
            await self._feed.disconnect()

        consumer = self._consumer
        self._consumer = None
        if consumer is not None and not consumer.done():
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer

        await self._scheduler.stop()
        self._fusion_state.clear()
        self._positions = MappingProxyType({})
        self._last_heartbeat_at = None

    def connection_state(self) -> ConnectionState:
        if self._feed is None:
            return ConnectionState.DISCONNECTED
        return self._feed.state

    def _ensure_feed(self) -> LiveFeedClient:
        if self._feed is not None:
            return self._feed
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = AiohttpStreamTransport(
                self._http_session,
                connect_timeout=self._config.connect_timeout,
                read_timeout=self._config.read_timeout,
            )
        self._feed = LiveFeedClient(
            self._transport,
            reconnect_delay=self._config.reconnect_delay,
            clock=self._clock,
        )
        return self._feed

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def _consume(self, feed: LiveFeedClient) -> None:
        while True:
            event = await feed.next_event()
            self.handle_event(event)

    def handle_event(self, event: FeedEvent) -> None:
        """Apply one feed event. Only the feed consumer should call this."""
        if isinstance(event, SnapshotReceived):
            self._fusion_state.apply_snapshot(event.snapshot, observed_at=self._clock())
            _logger.debug(
                "Applied snapshot seq=%s vehicles=%d",
                event.snapshot.sequence_number,
                len(event.snapshot.vehicles),
            )
        elif isinstance(event, HeartbeatReceived):
            self._last_heartbeat_at = event.received_at
        elif isinstance(event, SnapshotRejected):
            self._rejected += 1
        elif isinstance(event, Connected):
            _logger.debug("Feed connected to %s", event.url)
        elif isinstance(event, TransportError):
            _logger.debug("Feed transport error: %s (retry in %.1fs)", event.error, event.retry_in)
        else:
            raise TrainFusionError(f"Unknown feed event {event!r}")

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Recompute and publish positions for the current clock time."""
        self._positions = MappingProxyType(compute_positions(self._fusion_state, self._schedule, self._clock()))

    def current_positions(self) -> dict[str, ResolvedPosition]:
        """Positions published by the latest tick, keyed by trip id."""
        return dict(self._positions)

    def timetable_positions(self, route_id: str | None = None) -> dict[str, ResolvedPosition]:
        """Timetable-only positions of every trip in service right now.

        Independent of the live feed; tagged ``fallback``.
        """
        now_seconds = seconds_of_day(self._clock())
        trips = self._schedule.trips_for_route(route_id) if route_id is not None else list(self._schedule)
        positions: dict[str, ResolvedPosition] = {}
        for trip in trips:
            position = timetable_position(trip, self._schedule, now_seconds)
            if position is not None:
                positions[trip.trip_id] = position
        return positions

    def debug_snapshot(self) -> EngineDebugSnapshot:
        return EngineDebugSnapshot(
            connection_state=self.connection_state(),
            feed_url=self._feed.url if self._feed is not None else None,
            tracked_trips=len(self._fusion_state),
            published_trips=len(self._positions),
            last_sequence=self._fusion_state.last_sequence,
            snapshots_applied=self._fusion_state.snapshots_applied,
            snapshots_rejected=self._rejected,
            last_heartbeat_at=self._last_heartbeat_at,
        )

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta

import pytest

from trainfusion.exceptions import FeedTransportError
from trainfusion.models.schedule import ScheduledStop, Station, TrainSchedule
from trainfusion.schedule import ScheduleStore


class MutableClock:
    """Injectable clock returning a settable aware datetime."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def at(hour: int, minute: int, second: int = 0) -> datetime:
    return datetime(2026, 1, 1, hour, minute, second, tzinfo=UTC)


@pytest.fixture
def alpha_bravo_store() -> ScheduleStore:
    """Two-station line: Alpha (36.0, 139.0) departs 11:37, Bravo (36.1, 139.1) arrives 11:42."""
    return ScheduleStore(
        stations=[
            Station(id="A", name="Alpha", lat=36.0, lng=139.0),
            Station(id="B", name="Bravo", lat=36.1, lng=139.1),
            Station(id="C", name="Charlie Junction", lat=36.2, lng=139.3),
        ],
        trips=[
            TrainSchedule(
                trip_id="T1",
                route_id="R1",
                headsign="Charlie",
                stops=(
                    ScheduledStop(stop_id="A", arrival="11:37:00", departure="11:37:00", sequence=1),
                    ScheduledStop(stop_id="B", arrival="11:42:00", departure="11:43:00", sequence=2),
                    ScheduledStop(stop_id="C", arrival="11:48:00", departure="11:48:00", sequence=3),
                ),
            )
        ],
    )


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(at(11, 39, 30))


class FakeStreamTransport:
    """In-memory stream transport; each successful open gets its own chunk queue.

    Put ``bytes`` on a queue to deliver a chunk, ``None`` to close the stream.
    """

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.open_calls = 0
        self.streams: list[asyncio.Queue[bytes | None]] = []

    @contextlib.asynccontextmanager
    async def open(self, url: str) -> AsyncIterator[AsyncIterator[bytes]]:
        self.open_calls += 1
        if self.fail:
            raise FeedTransportError("connection refused", url=url)
        queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self.streams.append(queue)
        yield self._chunks(queue)

    @staticmethod
    async def _chunks(queue: asyncio.Queue[bytes | None]) -> AsyncIterator[bytes]:
        while True:
            chunk = await queue.get()
            if chunk is None:
                return
            yield chunk


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)

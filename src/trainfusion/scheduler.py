"""Fixed-rate position recompute loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime

from trainfusion._time import seconds_of_day
from trainfusion.fusion import resolve_position
from trainfusion.models.position import ResolvedPosition
from trainfusion.schedule import ScheduleStore
from trainfusion.state.store import FusionState

_logger = logging.getLogger(__name__)


def compute_positions(state: FusionState, store: ScheduleStore, now: datetime) -> dict[str, ResolvedPosition]:
    """Resolve every non-stale trip in *state*; stale trips are left out."""
    now_seconds = seconds_of_day(now)
    return {
        record.trip_id: resolve_position(record, store, now_seconds)
        for record in state.active_records(now)
    }


class RecomputeScheduler:
    """Run a tick callback at a fixed interval until stopped.

    Ticks are paced against the loop clock so slow ticks do not
    accumulate drift. A tick that raises is logged and the loop goes on.
    """

    def __init__(self, tick: Callable[[], None], *, interval: float) -> None:
        self._tick = tick
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the pending tick and wait for the loop to exit. Idempotent."""
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            try:
                self._tick()
            except Exception:
                _logger.exception("Position recompute tick failed")
            deadline += self._interval
            now = loop.time()
            if deadline < now:
                # Fell behind; skip missed ticks instead of bursting.
                deadline = now
            await asyncio.sleep(deadline - now)

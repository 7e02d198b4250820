"""Recurring background events with a persisted next-run time.

An event is registered in memory with a callback and an interval, and
scheduled by writing its next run time to an :class:`EventStore`. Because
only the next run time is persisted, a restart picks up where the previous
process left off and a callback never runs more often than its interval.

Usage:
    scheduler = Scheduler(store)
    scheduler.register("post_expiration_check", expire_posts, HOURLY)
    await scheduler.schedule_event("post_expiration_check")
    await scheduler.start()
    ...
    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)

HOURLY = timedelta(hours=1)


class EventStore(Protocol):
    """Key/value persistence for next-run times."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> bool: ...


@dataclass
class ScheduledEvent:
    name: str
    callback: Callable[[], Awaitable[Any] | Any]
    interval: timedelta = HOURLY


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Scheduler:
    """Runs due events from a single background asyncio task."""

    def __init__(
        self,
        store: EventStore,
        *,
        tick_seconds: float = 60.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._tick_seconds = tick_seconds
        self._clock = clock
        self._events: dict[str, ScheduledEvent] = {}
        self._task: asyncio.Task | None = None

    @staticmethod
    def store_key(name: str) -> str:
        return f"cron:{name}"

    @property
    def events(self) -> dict[str, ScheduledEvent]:
        return dict(self._events)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def register(
        self,
        name: str,
        callback: Callable[[], Awaitable[Any] | Any],
        interval: timedelta = HOURLY,
    ) -> ScheduledEvent:
        """Attach a callback to an event name. Does not schedule it."""
        event = ScheduledEvent(name=name, callback=callback, interval=interval)
        self._events[name] = event
        return event

    async def next_scheduled(self, name: str) -> datetime | None:
        value = await self._store.get(self.store_key(name))
        if not value:
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            logger.warning("Discarding unreadable next run %r for event %s", value, name)
            return None

    async def schedule_event(self, name: str, first_run: datetime | None = None) -> datetime:
        """Schedule an event unless it already has a persisted next run.

        Returns the next run time in effect afterwards.
        """
        existing = await self.next_scheduled(name)
        if existing is not None:
            return existing

        run_at = first_run or self._clock()
        await self._store.set(self.store_key(name), run_at.isoformat())
        logger.info("Scheduled event %s, first run at %s", name, run_at.isoformat())
        return run_at

    async def clear_scheduled_hook(self, name: str) -> bool:
        """Forget an event's persisted schedule and its in-memory callback."""
        self._events.pop(name, None)
        removed = await self._store.delete(self.store_key(name))
        if removed:
            logger.info("Cleared scheduled event %s", name)
        return removed

    async def run_due(self) -> list[str]:
        """Run every registered event whose next run time has passed.

        The next run time is advanced before the callback runs, so a
        callback that fails or a process that dies mid-run does not make
        the event fire again before its interval elapses.

        Returns:
            Names of the events that ran
        """
        ran = []
        now = self._clock()
        for event in list(self._events.values()):
            due_at = await self.next_scheduled(event.name)
            if due_at is None or due_at > now:
                continue

            await self._store.set(self.store_key(event.name), (now + event.interval).isoformat())
            result = event.callback()
            if asyncio.iscoroutine(result):
                await result
            ran.append(event.name)
        return ran

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_due()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("Scheduled event run failed", exc_info=True)
            await asyncio.sleep(self._tick_seconds)

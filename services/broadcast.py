"""Periodic snapshot production and fan-out to live subscribers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional, Set
from uuid import uuid4

from models.records import DashboardSnapshot
from services.data_source import DataSourceSwitch
from services.persistence import PersistenceService
from services.plant_state import PlantState

logger = logging.getLogger(__name__)

LATEST_SNAPSHOT_KEY = "plant-data/dashboard"


class Subscription:
    """Per-client mailbox of snapshots waiting to be sent."""

    def __init__(self, hub: "BroadcastHub", client_id: str, maxsize: int) -> None:
        self.hub = hub
        self.client_id = client_id
        self.queue: asyncio.Queue[DashboardSnapshot] = asyncio.Queue(maxsize=maxsize)

    def deliver(self, snapshot: DashboardSnapshot) -> None:
        if self.queue.full():
            # Slow consumer: keep the newest data.
            self.queue.get_nowait()
            logger.debug("Dropped stale snapshot", extra={"client_id": self.client_id})
        self.queue.put_nowait(snapshot)

    async def next(self) -> DashboardSnapshot:
        return await self.queue.get()

    def close(self) -> None:
        self.hub.unsubscribe(self)


class BroadcastHub:
    def __init__(self, state: PlantState, mailbox_size: int = 16) -> None:
        self.state = state
        self.mailbox_size = mailbox_size
        self._subscribers: Set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, client_id: Optional[str] = None) -> Subscription:
        """Register a client; it immediately receives the latest snapshot if any."""
        subscription = Subscription(self, client_id or str(uuid4()), self.mailbox_size)
        self._subscribers.add(subscription)
        latest = self.state.latest()
        if latest is not None:
            subscription.deliver(latest)
        logger.info(
            "Subscriber connected",
            extra={"client_id": subscription.client_id, "subscriber_count": self.subscriber_count},
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.discard(subscription)
            logger.info(
                "Subscriber disconnected",
                extra={"client_id": subscription.client_id, "subscriber_count": self.subscriber_count},
            )

    def publish(self, snapshot: DashboardSnapshot) -> int:
        subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription.deliver(snapshot)
        return len(subscribers)


class BroadcastScheduler:
    """Drives one snapshot per interval through the switch and out to the hub."""

    def __init__(
        self,
        switch: DataSourceSwitch,
        hub: BroadcastHub,
        persistence: Optional[PersistenceService] = None,
        interval_ms: int = 5000,
        persist_snapshots: bool = True,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("Broadcast interval must be positive.")
        self.switch = switch
        self.hub = hub
        self.persistence = persistence
        self.interval = interval_ms / 1000.0
        self.persist_snapshots = persist_snapshots
        self.tick_count = 0
        self._paused = False
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def started(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def running(self) -> bool:
        return self.started and not self._paused

    def pause(self) -> None:
        self._paused = True
        logger.info("Broadcasting paused")

    def resume(self) -> None:
        self._paused = False
        logger.info("Broadcasting resumed")

    def tick(self) -> DashboardSnapshot:
        snapshot = self.switch.next_snapshot()
        self.switch.state.replace_latest(snapshot)
        delivered = self.hub.publish(snapshot)
        self.tick_count += 1
        logger.debug(
            "Broadcast snapshot",
            extra={
                "tick": self.tick_count,
                "source": snapshot.source.value,
                "record_index": snapshot.record_index,
                "subscriber_count": delivered,
            },
        )
        if self.persist_snapshots and self.persistence is not None:
            self.persistence.submit(LATEST_SNAPSHOT_KEY, snapshot)
        return snapshot

    def start(self) -> None:
        if self.started:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Broadcast scheduler started", extra={"elapsed_ms": int(self.interval * 1000)})

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Broadcast scheduler stopped", extra={"tick": self.tick_count})

    def next_deadline(self, previous: float, now: float) -> float:
        """Deadline after ``previous``; deadlines already missed at ``now`` are skipped."""
        upcoming = previous + self.interval
        if upcoming < now:
            logger.warning(
                "Broadcast fell behind, skipping missed ticks",
                extra={"elapsed_ms": int((now - previous) * 1000)},
            )
            return now + self.interval
        return upcoming

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_fire = loop.time() + self.interval
        while True:
            await asyncio.sleep(max(0.0, next_fire - loop.time()))
            if not self._paused:
                try:
                    self.tick()
                except Exception:  # noqa: BLE001 - a bad tick must not end the timer
                    logger.exception("Broadcast tick failed", extra={"tick": self.tick_count})
            next_fire = self.next_deadline(next_fire, loop.time())

"""Wiring of the long-lived plant components."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from datastore.document_store import build_default_store
from services.advisor import AdvisorService, build_default_advisor
from services.broadcast import BroadcastHub, BroadcastScheduler
from services.data_source import DataSourceSwitch
from services.persistence import PersistenceService
from services.plant_state import PlantState
from settings import get_settings
from simulation.generator import SnapshotGenerator, build_default_generator


@dataclass
class PlantRuntime:
    generator: SnapshotGenerator
    state: PlantState
    switch: DataSourceSwitch
    hub: BroadcastHub
    scheduler: BroadcastScheduler
    persistence: PersistenceService
    advisor: AdvisorService

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        await self.persistence.drain()


def build_runtime(
    generator: SnapshotGenerator,
    advisor: AdvisorService,
    persistence: PersistenceService,
    interval_ms: int = 5000,
    persist_snapshots: bool = True,
) -> PlantRuntime:
    state = PlantState()
    switch = DataSourceSwitch(state, generator)
    hub = BroadcastHub(state)
    scheduler = BroadcastScheduler(
        switch,
        hub,
        persistence=persistence,
        interval_ms=interval_ms,
        persist_snapshots=persist_snapshots,
    )
    return PlantRuntime(
        generator=generator,
        state=state,
        switch=switch,
        hub=hub,
        scheduler=scheduler,
        persistence=persistence,
        advisor=advisor,
    )


@lru_cache
def build_default_runtime() -> PlantRuntime:
    """Factory that wires the runtime from environment settings."""
    settings = get_settings()
    store = build_default_store() if settings.store_path else None
    return build_runtime(
        generator=build_default_generator(),
        advisor=build_default_advisor(),
        persistence=PersistenceService(store),
        interval_ms=settings.broadcast_interval_ms,
        persist_snapshots=settings.persist_snapshots,
    )

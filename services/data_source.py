"""Selection between synthesized snapshots and recorded replay."""

from __future__ import annotations

import logging
from typing import Optional

from models.records import DashboardSnapshot, DataMode
from services.plant_state import PlantState, ReplayStatus
from simulation.generator import SnapshotGenerator
from sources.real_data import load_real_records, snapshot_from_record

logger = logging.getLogger(__name__)


class DataSourceSwitch:
    """Chooses where the next snapshot comes from.

    Real mode with no loaded records falls back to simulated output without
    touching the replay position.
    """

    def __init__(self, state: PlantState, generator: SnapshotGenerator) -> None:
        self.state = state
        self.generator = generator
        self._warned_empty = False

    @property
    def mode(self) -> DataMode:
        return self.state.mode

    def load_real(self, kind: str, path: Optional[str] = None) -> int:
        records = load_real_records(kind, path)
        self.state.load_records(records)
        self._warned_empty = False
        logger.info("Loaded recorded plant data", extra={"source": kind, "record_count": len(records)})
        return len(records)

    def toggle(self) -> DataMode:
        mode = self.state.flip_mode()
        logger.info("Data source toggled", extra={"source": mode.value})
        return mode

    def reset(self) -> None:
        self.state.reset_position()

    def status(self) -> ReplayStatus:
        return self.state.replay_status()

    def next_snapshot(self) -> DashboardSnapshot:
        taken = self.state.take_record()
        if taken is not None:
            index, record = taken
            return snapshot_from_record(record, index, self.generator)

        if self.state.mode is DataMode.real and not self._warned_empty:
            logger.warning(
                "Real data mode active without recorded data, using simulation",
                extra={"reason": "no records loaded"},
            )
            self._warned_empty = True
        return self.generator.generate_snapshot()

    def current_snapshot(self) -> DashboardSnapshot:
        """Return the cached snapshot, producing and caching one on first use."""
        latest = self.state.latest()
        if latest is not None:
            return latest
        snapshot = self.next_snapshot()
        self.state.replace_latest(snapshot)
        return snapshot

"""Mutable runtime state: latest snapshot, active mode and replay position."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Optional, Sequence, Tuple

from models.records import DashboardSnapshot, DataMode, RealPlantRecord


@dataclass(frozen=True)
class ReplayStatus:
    mode: DataMode
    record_count: int
    position: int
    next_record: Optional[RealPlantRecord]


class PlantState:
    """Owns every piece of state shared between the switch, scheduler and routes.

    All mutation goes through the methods below. The latest snapshot is swapped
    by reference and never modified in place.
    """

    def __init__(self, mode: DataMode = DataMode.simulated) -> None:
        self._mode = mode
        self._records: Tuple[RealPlantRecord, ...] = ()
        self._position = 0
        self._latest: Optional[DashboardSnapshot] = None
        self._lock = Lock()

    @property
    def mode(self) -> DataMode:
        with self._lock:
            return self._mode

    @property
    def position(self) -> int:
        with self._lock:
            return self._position

    @property
    def record_count(self) -> int:
        with self._lock:
            return len(self._records)

    def latest(self) -> Optional[DashboardSnapshot]:
        with self._lock:
            return self._latest

    def replace_latest(self, snapshot: DashboardSnapshot) -> None:
        with self._lock:
            self._latest = snapshot

    def flip_mode(self) -> DataMode:
        with self._lock:
            self._mode = DataMode.real if self._mode is DataMode.simulated else DataMode.simulated
            return self._mode

    def load_records(self, records: Sequence[RealPlantRecord]) -> None:
        with self._lock:
            self._records = tuple(records)
            self._position = 0

    def reset_position(self) -> None:
        with self._lock:
            self._position = 0

    def take_record(self) -> Optional[Tuple[int, RealPlantRecord]]:
        """Return the next replay record and advance, or ``None`` if not replaying."""
        with self._lock:
            if self._mode is not DataMode.real or not self._records:
                return None
            index = self._position % len(self._records)
            self._position += 1
            return index, self._records[index]

    def replay_status(self) -> ReplayStatus:
        with self._lock:
            next_record = None
            if self._mode is DataMode.real and self._records:
                next_record = self._records[self._position % len(self._records)]
            return ReplayStatus(
                mode=self._mode,
                record_count=len(self._records),
                position=self._position,
                next_record=next_record,
            )

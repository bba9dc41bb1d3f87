"""Bounded random and cyclical signal primitives."""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional

_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class CyclicalChannel:
    """Parameters of one periodic signal: ``base + amplitude * sin(...)``."""

    base: float
    amplitude: float
    period_hours: float
    phase: float = 0.0

    def __post_init__(self) -> None:
        if not self.period_hours > 0:
            raise ValueError(
                f"Cyclical period must be positive, got {self.period_hours!r} hours."
            )

    @property
    def low(self) -> float:
        return self.base - abs(self.amplitude)

    @property
    def high(self) -> float:
        return self.base + abs(self.amplitude)


class SignalSynthesizer:
    """Numeric generation routines shared by every snapshot sub-generator.

    Elapsed time for cyclical signals is measured from ``epoch``, which defaults
    to the clock reading at construction. Both the clock and the random source
    can be injected so tests can pin time and draw sequences.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        epoch: Optional[float] = None,
    ) -> None:
        self.rng = rng or random.Random()
        self.clock = clock
        self.epoch = clock() if epoch is None else epoch

    def bounded_random(self, low: float, high: float, noise: float = 0.1) -> float:
        if low > high:
            raise ValueError(f"Lower bound {low} exceeds upper bound {high}.")
        base = low + self.rng.random() * (high - low)
        jitter = base * noise * (self.rng.random() - 0.5) * 2
        return max(low, min(high, base + jitter))

    def elapsed_hours(self, now: Optional[float] = None) -> float:
        current = self.clock() if now is None else now
        return (current - self.epoch) / _SECONDS_PER_HOUR

    def cyclical(
        self,
        base: float,
        amplitude: float,
        period_hours: float,
        phase: float = 0.0,
        now: Optional[float] = None,
    ) -> float:
        if not period_hours > 0:
            raise ValueError(f"Cyclical period must be positive, got {period_hours!r} hours.")
        angle = 2 * math.pi * self.elapsed_hours(now) / period_hours + phase
        return base + amplitude * math.sin(angle)

    def channel(self, channel: CyclicalChannel, now: Optional[float] = None) -> float:
        return self.cyclical(
            channel.base, channel.amplitude, channel.period_hours, channel.phase, now=now
        )

    def chance(self, probability: float) -> bool:
        return self.rng.random() < probability

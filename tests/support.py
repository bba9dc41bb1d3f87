from __future__ import annotations

import random

from services.advisor import AdvisorService, GenerativeTextClient
from simulation.generator import SimulationConfig, SnapshotGenerator
from simulation.synthesizer import SignalSynthesizer

EPOCH = 1_700_000_000.0


class FakeClock:
    def __init__(self, start: float = EPOCH) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_generator(
    seed: int = 7,
    clock: FakeClock | None = None,
    anomaly_probability: float = 0.0,
) -> SnapshotGenerator:
    clock = clock or FakeClock()
    synth = SignalSynthesizer(rng=random.Random(seed), clock=clock, epoch=EPOCH)
    return SnapshotGenerator(SimulationConfig(anomaly_probability=anomaly_probability), synth)


def make_advisor() -> AdvisorService:
    return AdvisorService(GenerativeTextClient(api_url="http://ai.invalid/generate", api_key=None))

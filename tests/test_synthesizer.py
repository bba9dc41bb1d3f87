import math
import random

import pytest

from simulation.synthesizer import CyclicalChannel, SignalSynthesizer

HOUR = 3600.0


def test_bounded_random_stays_within_bounds() -> None:
    synth = SignalSynthesizer(rng=random.Random(1), epoch=0.0)

    for noise in (0.0, 0.1, 1.0):
        values = [synth.bounded_random(10.0, 20.0, noise) for _ in range(2000)]
        assert min(values) >= 10.0
        assert max(values) <= 20.0


def test_bounded_random_handles_negative_ranges() -> None:
    synth = SignalSynthesizer(rng=random.Random(2), epoch=0.0)

    values = [synth.bounded_random(-15.0, -5.0, 0.5) for _ in range(2000)]

    assert all(-15.0 <= value <= -5.0 for value in values)


def test_bounded_random_rejects_inverted_bounds() -> None:
    synth = SignalSynthesizer(rng=random.Random(3), epoch=0.0)

    with pytest.raises(ValueError):
        synth.bounded_random(5.0, 1.0)


def test_bounded_random_degenerate_range() -> None:
    synth = SignalSynthesizer(rng=random.Random(4), epoch=0.0)

    assert synth.bounded_random(3.0, 3.0) == 3.0


def test_cyclical_follows_sine_from_epoch() -> None:
    synth = SignalSynthesizer(rng=random.Random(5), clock=lambda: 0.0, epoch=0.0)

    assert synth.cyclical(100.0, 10.0, 4.0, now=0.0) == pytest.approx(100.0)
    assert synth.cyclical(100.0, 10.0, 4.0, now=1 * HOUR) == pytest.approx(110.0)
    assert synth.cyclical(100.0, 10.0, 4.0, now=3 * HOUR) == pytest.approx(90.0)


def test_cyclical_is_periodic() -> None:
    synth = SignalSynthesizer(rng=random.Random(6), epoch=1000.0)
    period_hours = 6.0

    for offset in (0.0, 1234.5, 7 * HOUR):
        first = synth.cyclical(2800.0, 200.0, period_hours, math.pi / 4, now=1000.0 + offset)
        second = synth.cyclical(
            2800.0, 200.0, period_hours, math.pi / 4, now=1000.0 + offset + period_hours * HOUR
        )
        assert first == pytest.approx(second)


def test_cyclical_uses_injected_clock() -> None:
    current = {"now": 0.0}
    synth = SignalSynthesizer(rng=random.Random(7), clock=lambda: current["now"])

    current["now"] = 6 * HOUR
    channel = CyclicalChannel(base=0.0, amplitude=1.0, period_hours=24.0)

    assert synth.channel(channel) == pytest.approx(1.0)
    assert synth.elapsed_hours() == pytest.approx(6.0)


def test_cyclical_rejects_non_positive_period() -> None:
    synth = SignalSynthesizer(rng=random.Random(8), epoch=0.0)

    with pytest.raises(ValueError):
        synth.cyclical(1.0, 1.0, 0.0)
    with pytest.raises(ValueError):
        CyclicalChannel(base=1.0, amplitude=1.0, period_hours=-2.0)


def test_channel_bounds() -> None:
    channel = CyclicalChannel(base=1450.0, amplitude=-40.0, period_hours=4.0)

    assert channel.low == 1410.0
    assert channel.high == 1490.0


def test_chance_extremes() -> None:
    synth = SignalSynthesizer(rng=random.Random(9), epoch=0.0)

    assert not any(synth.chance(0.0) for _ in range(500))
    assert all(synth.chance(1.0) for _ in range(500))

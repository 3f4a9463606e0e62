from __future__ import annotations

import pytest

from pylotusim.clock import FrameClock


class _FakeNow:
    def __init__(self) -> None:
        self.value = 100.0

    def __call__(self) -> float:
        return self.value


def test_tick_accumulates_real_elapsed_time() -> None:
    now = _FakeNow()
    clock = FrameClock(now=now)

    now.value += 0.25
    assert clock.tick() == pytest.approx(0.25)
    now.value += 0.5
    clock.tick()

    assert clock.time == pytest.approx(0.75)
    assert clock.delta_time == pytest.approx(0.5)


def test_time_scale_scales_delta_but_not_real_delta() -> None:
    now = _FakeNow()
    clock = FrameClock(now=now)
    clock.time_scale = 0.0

    now.value += 0.1
    clock.tick()

    assert clock.time == 0.0
    assert clock.delta_time == 0.0
    assert clock.real_delta_time == pytest.approx(0.1)


def test_negative_time_scale_is_clamped() -> None:
    clock = FrameClock(now=_FakeNow())

    clock.time_scale = -2.0

    assert clock.time_scale == 0.0


def test_advance_sets_exact_frame() -> None:
    clock = FrameClock(now=_FakeNow())
    clock.time_scale = 0.0

    clock.advance(0.02)

    assert clock.time == pytest.approx(0.02)
    assert clock.delta_time == pytest.approx(0.02)
    assert clock.real_delta_time == pytest.approx(0.02)

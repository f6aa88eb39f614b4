"""Tests for jog distance generation."""

from __future__ import annotations

import pytest

from simple_pendant.jog_profile import JogProfile, format_distance, jog_command, step_distance


class TestContinuousRamp:
    def test_first_tick_at_full_dial_speed(self) -> None:
        jog = JogProfile()
        dist = jog.continuous_distance(5, 1.0, 3000.0, 500.0, 50.0)
        assert dist == pytest.approx(12.5)
        assert jog.last_velocity == pytest.approx(15000.0)

    def test_negative_delta_gives_negative_distance(self) -> None:
        jog = JogProfile()
        assert jog.continuous_distance(-5, 1.0, 3000.0, 500.0, 50.0) == pytest.approx(-12.5)

    def test_slow_dial_runs_at_max_rate(self) -> None:
        jog = JogProfile()
        dist = jog.continuous_distance(1, 0.02, 3000.0, 500.0, 100.0)
        assert jog.last_velocity == pytest.approx(3000.0)
        assert dist == pytest.approx(5.0)

    def test_velocity_never_drops_while_turning(self) -> None:
        jog = JogProfile()
        jog.last_velocity = 15000.0
        velocities = []
        for _ in range(4):
            jog.continuous_distance(1, 0.02, 3000.0, 500.0, 50.0)
            velocities.append(jog.last_velocity)
        assert velocities == pytest.approx([15025.0, 15050.0, 15075.0, 15100.0])

    def test_distance_rounded_to_three_decimals(self) -> None:
        jog = JogProfile()
        jog.last_velocity = 15000.0
        assert jog.continuous_distance(1, 0.02, 3000.0, 500.0, 50.0) == pytest.approx(12.521)

    def test_zero_delta_moves_nothing(self) -> None:
        jog = JogProfile()
        assert jog.continuous_distance(0, 1.0, 3000.0, 500.0, 50.0) == 0.0
        assert jog.last_velocity == 0.0

    def test_decay_reaches_zero_and_stays(self) -> None:
        jog = JogProfile()
        jog.last_velocity = 1000.0
        history = [jog.decay(500.0, 200.0) for _ in range(12)]
        assert history[0] == pytest.approx(900.0)
        assert history[9] == pytest.approx(0.0)
        assert history[-1] == 0.0
        assert all(a >= b for a, b in zip(history, history[1:]))

    def test_reset(self) -> None:
        jog = JogProfile()
        jog.last_velocity = 42.0
        jog.tick(1.0)
        jog.reset()
        assert jog.last_velocity == 0.0
        assert jog.tick(5.0) == 0.0


class TestTick:
    def test_first_tick_is_zero(self) -> None:
        assert JogProfile().tick(10.0) == 0.0

    def test_elapsed_milliseconds(self) -> None:
        jog = JogProfile(max_dt_ms=200)
        jog.tick(1.0)
        assert jog.tick(1.05) == pytest.approx(50.0)

    def test_capped(self) -> None:
        jog = JogProfile(max_dt_ms=200)
        jog.tick(1.0)
        assert jog.tick(4.0) == 200.0

    def test_clock_going_backwards(self) -> None:
        jog = JogProfile()
        jog.tick(2.0)
        assert jog.tick(1.0) == 0.0

    def test_uses_injected_clock(self) -> None:
        times = iter([0.0, 0.1])
        jog = JogProfile(clock=lambda: next(times))
        assert jog.tick() == 0.0
        assert jog.tick() == pytest.approx(100.0)


class TestStepAndFormat:
    @pytest.mark.parametrize(
        "delta, step, expected",
        [(1, 0.001, 0.001), (3, 0.01, 0.03), (-2, 0.1, -0.2), (4, 1.0, 4.0), (-1, 1.0, -1.0)],
    )
    def test_step_distance(self, delta: int, step: float, expected: float) -> None:
        assert step_distance(delta, step) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "value, text",
        [(12.5, "12.5"), (-0.2, "-0.2"), (4.0, "4"), (0.0, "0"), (-0.0001, "0"), (1.25, "1.25")],
    )
    def test_format_distance(self, value: float, text: str) -> None:
        assert format_distance(value) == text

    def test_jog_command(self) -> None:
        assert jog_command("X", 12.5) == "G0 X12.5"
        assert jog_command("Z", -0.03) == "G0 Z-0.03"

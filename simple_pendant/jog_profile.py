#!/usr/bin/env python3
# Simple Pendant (GRBL jog pendant bridge)
# Copyright (C) 2026 Bob Kolbasowski
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
# Optional (not required by the license): If you make improvements, please consider
# contributing them back upstream (e.g., via a pull request) so others can benefit.
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Jog distance generation for the pendant dial."""

from __future__ import annotations

import time
from typing import Callable

from .codec import round_half_up
from .utils.constants import JOG_DISTANCE_DECIMALS, JOG_MAX_DT_MS


def format_distance(distance: float) -> str:
    text = f"{distance:.{JOG_DISTANCE_DECIMALS}f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def jog_command(axis: str, distance: float) -> str:
    return f"G0 {axis}{format_distance(distance)}"


def step_distance(delta: int, step_size: float) -> float:
    """Fixed-distance jog: clicks times the selected step, 3 decimals."""
    dist = round_half_up(abs(delta) * step_size, JOG_DISTANCE_DECIMALS)
    return dist if delta >= 0 else -dist


class JogProfile:
    """Acceleration-bounded velocity ramp for continuous jogging.

    Velocities are mm/min, accelerations mm/s^2 and time steps ms. The
    ramp only grows while the dial keeps turning; it decays once the dial
    stops or the pendant leaves continuous mode.
    """

    def __init__(
        self,
        max_dt_ms: float = JOG_MAX_DT_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_dt_ms = float(max_dt_ms)
        self.last_velocity = 0.0
        self._clock = clock
        self._last_ts: float | None = None

    def tick(self, now: float | None = None) -> float:
        """Milliseconds since the previous report, capped at max_dt_ms.

        The first report after construction or reset yields 0.
        """
        now = self._clock() if now is None else now
        last = self._last_ts
        self._last_ts = now
        if last is None:
            return 0.0
        return min(self.max_dt_ms, max(0.0, (now - last) * 1000.0))

    def continuous_distance(
        self,
        delta: int,
        fraction: float,
        max_rate: float,
        accel: float,
        dt_ms: float,
    ) -> float:
        """Signed jog distance (mm) for one report, updating the ramp."""
        if delta == 0:
            return 0.0
        requested = max(max_rate, fraction * max_rate * abs(delta))
        actual = max(requested, self.last_velocity + accel * dt_ms / 1000.0)
        self.last_velocity = actual
        dist = round_half_up(actual * dt_ms / 60000.0, JOG_DISTANCE_DECIMALS)
        return dist if delta > 0 else -dist

    def decay(self, accel: float, dt_ms: float) -> float:
        self.last_velocity = max(0.0, self.last_velocity - accel * dt_ms / 1000.0)
        return self.last_velocity

    def reset(self) -> None:
        self.last_velocity = 0.0
        self._last_ts = None

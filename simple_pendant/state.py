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

"""Controller and machine state records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from simple_pendant.types import (
    Axis,
    CoordinateSystem,
    DistanceMode,
    JogMode,
    MachineState,
)

from .utils.constants import (
    AXIS_CODES,
    FEED_STEP_DEFAULT,
    FEED_STEPS,
    SPINDLE_DEFAULT,
    SPINDLE_MAX,
    SPINDLE_MIN,
    SPINDLE_STEP,
)

logger = logging.getLogger(__name__)

_ACTIVE_STATES: dict[str, MachineState] = {
    "Run": "run",
    "Hold": "hold",
    "Idle": "idle",
}


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    a: float = 0.0

    def axes(self, count: int = 4) -> tuple[float, ...]:
        return (self.x, self.y, self.z, self.a)[:count]


@dataclass(frozen=True)
class MachineStatus:
    """One parsed controller status report."""
    state: str = ""
    mpos: Position = Position()
    wpos: Position = Position()
    feed: float = 0.0
    spindle: float = 0.0
    axis_count: int = 3


@dataclass(frozen=True)
class MachineSnapshot:
    """Latest controller status plus per-axis motion limits.

    Replaced as a whole on every update; never mutated.
    """
    status: MachineStatus = MachineStatus()
    max_rate: dict[str, float] = field(default_factory=dict)
    accel: dict[str, float] = field(default_factory=dict)

    def with_status(self, status: MachineStatus) -> "MachineSnapshot":
        return replace(self, status=status)

    def with_settings(
        self,
        max_rate: dict[str, float] | None = None,
        accel: dict[str, float] | None = None,
    ) -> "MachineSnapshot":
        return replace(
            self,
            max_rate={**self.max_rate, **(max_rate or {})},
            accel={**self.accel, **(accel or {})},
        )


@dataclass
class ControllerState:
    axis: Axis = "OFF"
    feed_step: int = FEED_STEP_DEFAULT
    jog_mode: JogMode = "continuous"
    coordinate_system: CoordinateSystem = "machine"
    machine_state: MachineState = "idle"
    feed_rate: int = 0
    spindle_target: int = SPINDLE_DEFAULT
    distance_mode: DistanceMode = "absolute"

    @property
    def step_size(self) -> float | None:
        return FEED_STEPS.get(self.feed_step, (None, 0.0))[0]

    @property
    def velocity_fraction(self) -> float:
        return FEED_STEPS.get(self.feed_step, (None, 0.0))[1]


def apply_status(state: ControllerState, status: MachineStatus) -> bool:
    """Mirror a status report into the controller state.

    Returns:
        True if the machine state changed
    """
    state.feed_rate = int(status.feed)
    new_state = _ACTIVE_STATES.get(status.state)
    if new_state is None or new_state == state.machine_state:
        return False
    logger.debug(f"Machine state {state.machine_state} -> {new_state}")
    state.machine_state = new_state
    return True


def apply_selectors(state: ControllerState, axis_code: int, feed_code: int) -> None:
    """Track the axis and feed selector switches.

    Unknown selector codes leave the previous selection in place.
    """
    axis = AXIS_CODES.get(axis_code)
    if axis is not None:
        state.axis = axis  # type: ignore[assignment]
    if feed_code in FEED_STEPS:
        state.feed_step = feed_code


def set_jog_mode(state: ControllerState, mode: JogMode) -> bool:
    if state.jog_mode == mode:
        return False
    state.jog_mode = mode
    return True


def toggle_coordinate_system(state: ControllerState) -> CoordinateSystem:
    state.coordinate_system = "work" if state.coordinate_system == "machine" else "machine"
    return state.coordinate_system


def adjust_spindle(
    state: ControllerState,
    direction: int,
    *,
    min_rpm: int = SPINDLE_MIN,
    max_rpm: int = SPINDLE_MAX,
    step: int = SPINDLE_STEP,
) -> int:
    """Step the spindle target up (direction > 0) or down, clamped to bounds."""
    target = state.spindle_target + (step if direction > 0 else -step)
    state.spindle_target = max(min_rpm, min(max_rpm, target))
    return state.spindle_target


def display_positions(state: ControllerState, status: MachineStatus) -> tuple[float, ...]:
    """Coordinates shown on the pendant, from exactly one frame."""
    pos = status.wpos if state.coordinate_system == "work" else status.mpos
    return pos.axes(4 if status.axis_count >= 4 else 3)

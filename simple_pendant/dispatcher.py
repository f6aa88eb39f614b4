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

"""Per-report handling of pendant input.

Buttons fire once per physical transition: a report whose button, fn and
selector bytes match the previous one skips button handling, whatever the
dial did, but still drives the jog path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from simple_pendant.codec import InputReport
from simple_pendant.command_queue import CommandQueue
from simple_pendant.jog_profile import JogProfile, jog_command, step_distance
from simple_pendant.macro_runner import MacroRunner
from simple_pendant.state import (
    ControllerState,
    MachineSnapshot,
    adjust_spindle,
    apply_selectors,
    set_jog_mode,
    toggle_coordinate_system,
)
from simple_pendant.types import ControllerLink

from .utils import constants as const
from .utils.constants import (
    BUTTON_CONTINUOUS,
    BUTTON_MACRO_10,
    BUTTON_RESET,
    BUTTON_SPINDLE_PLUS,
    CMD_HOMING,
    CMD_PAUSE,
    CMD_RESET,
    CMD_RESUME,
    CMD_START,
    CMD_STOP,
    CMD_UNLOCK,
    FN_MACRO_SLOTS,
    GCODE_ABSOLUTE,
    GCODE_RELATIVE,
    GCODE_SPINDLE_OFF,
    GCODE_WORKING_AREA_HOME,
    PROBE_DEPTH_DEFAULT,
    PROBE_FEED_DEFAULT,
    PROBE_PLATE_THICKNESS_DEFAULT,
    PROBE_RETRACT_DEFAULT,
    RAMPED_AXES,
    SAFE_Z_COMMAND_DEFAULT,
    SPINDLE_MAX,
    SPINDLE_MIN,
    SPINDLE_STEP,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchOptions:
    spindle_min: int = SPINDLE_MIN
    spindle_max: int = SPINDLE_MAX
    spindle_step: int = SPINDLE_STEP
    safe_z_command: str = SAFE_Z_COMMAND_DEFAULT
    probe_depth: float = PROBE_DEPTH_DEFAULT
    probe_feed: float = PROBE_FEED_DEFAULT
    probe_plate_thickness: float = PROBE_PLATE_THICKNESS_DEFAULT
    probe_retract: float = PROBE_RETRACT_DEFAULT


def _num(value: float) -> str:
    return f"{value:g}"


def probe_z_sequence(options: DispatchOptions) -> list[str]:
    """Touch off Z on a plate of known thickness and back away."""
    return [
        GCODE_RELATIVE,
        f"G38.2 Z-{_num(options.probe_depth)} F{_num(options.probe_feed)}",
        GCODE_ABSOLUTE,
        f"G10 L20 P0 Z{_num(options.probe_plate_thickness)}",
        GCODE_RELATIVE,
        f"G0 Z{_num(options.probe_retract)}",
        GCODE_ABSOLUTE,
    ]


class InputDispatcher:
    def __init__(
        self,
        state: ControllerState,
        queue: CommandQueue,
        jog: JogProfile,
        macros: MacroRunner,
        link: ControllerLink,
        options: DispatchOptions | None = None,
    ):
        self._state = state
        self._queue = queue
        self._jog = jog
        self._macros = macros
        self._link = link
        self._options = options or DispatchOptions()
        self._last_report: InputReport | None = None
        self._ramp_accel = 0.0

    def reset(self) -> None:
        """Forget the previous report and the jog ramp (device reattached)."""
        self._last_report = None
        self._jog.reset()

    def handle_report(
        self,
        report: InputReport,
        snapshot: MachineSnapshot,
        now: float | None = None,
    ) -> bool:
        """Process one decoded report.

        Returns:
            True if a displayed field (jog mode, coordinate frame) changed
        """
        dt_ms = self._jog.tick(now)
        apply_selectors(self._state, report.axis, report.feed)
        display_changed = False
        buttons = replace(report, jog_delta=0)
        if buttons != self._last_report:
            display_changed = self._handle_button(report, snapshot)
        self._last_report = buttons
        self._handle_jog(report, snapshot, dt_ms)
        return display_changed

    # ========================================================================
    # BUTTONS
    # ========================================================================

    def _handle_button(self, report: InputReport, snapshot: MachineSnapshot) -> bool:
        button = report.button
        if report.fn_held:
            if button == BUTTON_RESET:
                self._link.send_command(CMD_UNLOCK)
                return False
            if button == BUTTON_CONTINUOUS:
                frame = toggle_coordinate_system(self._state)
                logger.info(f"Showing {frame} coordinates")
                return True
            slot = FN_MACRO_SLOTS.get(button)
            if slot is not None:
                self._macros.run_slot(slot)
                return False
        return self._handle_primary(button, snapshot)

    def _handle_primary(self, button: int, snapshot: MachineSnapshot) -> bool:
        state = self._state
        opts = self._options
        match button:
            case const.BUTTON_RESET:
                self._link.send_command(CMD_RESET)
                self._queue.reset()
            case const.BUTTON_STOP:
                self._link.send_command(CMD_STOP)
            case const.BUTTON_START_PAUSE:
                if state.machine_state == "run":
                    self._link.send_command(CMD_PAUSE)
                elif state.machine_state == "hold":
                    self._link.send_command(CMD_RESUME)
                else:
                    self._link.send_command(CMD_START)
            case const.BUTTON_SPINDLE_PLUS | const.BUTTON_SPINDLE_MINUS:
                target = adjust_spindle(
                    state,
                    1 if button == BUTTON_SPINDLE_PLUS else -1,
                    min_rpm=opts.spindle_min,
                    max_rpm=opts.spindle_max,
                    step=opts.spindle_step,
                )
                self._queue.enqueue("other", f"S{target}")
                return True
            case const.BUTTON_MACHINE_HOME:
                self._link.send_command(CMD_HOMING)
            case const.BUTTON_SAFE_Z:
                self._queue.enqueue("other", opts.safe_z_command)
            case const.BUTTON_WORKING_AREA_HOME:
                self._queue.enqueue("other", GCODE_WORKING_AREA_HOME)
            case const.BUTTON_SPINDLE_ON_OFF:
                if snapshot.status.spindle == 0:
                    self._queue.enqueue("other", f"M3 S{state.spindle_target}")
                else:
                    self._queue.enqueue("other", GCODE_SPINDLE_OFF)
            case const.BUTTON_PROBE_Z:
                self._queue.enqueue_many("other", probe_z_sequence(opts))
            case const.BUTTON_CONTINUOUS:
                return set_jog_mode(state, "continuous")
            case const.BUTTON_STEP:
                return set_jog_mode(state, "step")
            case const.BUTTON_MACRO_10:
                self._macros.run_slot(FN_MACRO_SLOTS[BUTTON_MACRO_10])
        return False

    # ========================================================================
    # JOG
    # ========================================================================

    def _handle_jog(self, report: InputReport, snapshot: MachineSnapshot, dt_ms: float) -> None:
        state = self._state
        axis = state.axis
        delta = report.jog_delta
        accel = snapshot.accel.get(axis, 0.0)
        if axis in RAMPED_AXES and accel > 0:
            self._ramp_accel = accel
        # decay with the last ramped axis, the selected one may have no limit
        decay_accel = self._ramp_accel

        if state.jog_mode == "step":
            self._jog.decay(decay_accel, dt_ms)
            step_size = state.step_size
            if delta == 0 or axis == "OFF" or step_size is None:
                return
            distance = step_distance(delta, step_size)
            if distance:
                self._queue.enqueue("position", jog_command(axis, distance))
            return

        fraction = state.velocity_fraction
        max_rate = snapshot.max_rate.get(axis, 0.0)
        if delta == 0 or axis not in RAMPED_AXES or fraction <= 0 or max_rate <= 0:
            self._jog.decay(decay_accel, dt_ms)
            self._queue.discard_pending("position")
            return

        distance = self._jog.continuous_distance(delta, fraction, max_rate, accel, dt_ms)
        if not distance:
            return
        if self._queue.in_flight:
            logger.debug(f"Jog tick dropped ({axis}{distance}), command in flight")
            return
        self._queue.enqueue("position", jog_command(axis, distance))

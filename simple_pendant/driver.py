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

"""The pendant driver: one dispatch loop over all pendant events."""

from __future__ import annotations

import logging
import queue
import time
from typing import Any, Callable

from simple_pendant.codec import (
    ReportLayout,
    decode_report,
    encode_display_frame,
    packetize,
)
from simple_pendant.command_queue import CommandQueue
from simple_pendant.dispatcher import DispatchOptions, InputDispatcher
from simple_pendant.events import PendantEventQueue
from simple_pendant.grbl_status import axis_limits
from simple_pendant.jog_profile import JogProfile
from simple_pendant.macro_config import MacroConfig
from simple_pendant.macro_runner import MacroRunner
from simple_pendant.state import (
    ControllerState,
    MachineSnapshot,
    apply_status,
    display_positions,
)
from simple_pendant.types import ControllerLink, PendantEvent, PendantHandle

from .utils.constants import EVENT_QUEUE_TIMEOUT, JOG_MAX_DT_MS, SPINDLE_DEFAULT
from .utils.exceptions import (
    PendantConnectionError,
    PendantWriteError,
    ReportDecodeError,
)

logger = logging.getLogger(__name__)


class PendantDriver:
    """Owns the pendant state and routes every event to it.

    All state is mutated on the thread calling run() (or handle_event()
    in tests); the device, link and hotplug threads only post events.
    """

    def __init__(
        self,
        events: PendantEventQueue,
        device: PendantHandle,
        link: ControllerLink,
        *,
        layout: ReportLayout | None = None,
        options: DispatchOptions | None = None,
        macro_config: MacroConfig | None = None,
        hotplug: Any | None = None,
        spindle_default: int = SPINDLE_DEFAULT,
        jog_max_dt_ms: float = JOG_MAX_DT_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.events = events
        self.device = device
        self.link = link
        self.layout = layout or ReportLayout.named()
        self.macro_config = macro_config
        self.hotplug = hotplug
        self._clock = clock

        self.state = ControllerState(spindle_target=int(spindle_default))
        self.snapshot = MachineSnapshot()
        self.queue = CommandQueue(self.state, link.write)
        self.jog = JogProfile(jog_max_dt_ms, clock)
        self.macros = MacroRunner(link)
        self.dispatcher = InputDispatcher(
            self.state, self.queue, self.jog, self.macros, link, options
        )
        self._running = False

    # ========================================================================
    # LOOP
    # ========================================================================

    def run(self) -> None:
        """Process events until a ("stop",) event arrives."""
        self._running = True
        logger.info("Pendant driver running")
        while self._running:
            self._poll_macro_config()
            try:
                evt = self.events.get(timeout=EVENT_QUEUE_TIMEOUT)
            except queue.Empty:
                evt = None
            if evt is not None:
                try:
                    self._running = self.handle_event(evt)
                except Exception as exc:
                    logger.error(f"Event error ({evt[0]}): {exc}", exc_info=True)
            summary = self.events.pop_drop_summary()
            if summary:
                logger.warning(summary)
        logger.info("Pendant driver stopped")

    def stop(self) -> None:
        self.events.put(("stop",))

    def handle_event(self, evt: PendantEvent) -> bool:
        """Route one event. Returns False when the loop should end."""
        match evt:
            case ("input", raw):
                self._handle_input(raw)
            case ("reply", line):
                self.queue.acknowledge(line)
            case ("status", status):
                self.snapshot = self.snapshot.with_status(status)
                apply_status(self.state, status)
                self.refresh_display()
            case ("settings", values):
                max_rate, accel = axis_limits(values)
                self.snapshot = self.snapshot.with_settings(max_rate, accel)
                logger.info(f"Axis limits: max rate {max_rate}, accel {accel}")
                self.refresh_display()
            case ("device", True):
                self._attach_device()
            case ("device", False):
                self._detach_device()
            case ("link", connected, detail):
                self.queue.reset()
                if connected:
                    logger.info(f"Controller link up ({detail})")
                    self.refresh_display()
                else:
                    logger.warning(f"Controller link down ({detail or 'closed'})")
            case ("macros", macro_ids):
                self.macros.update(macro_ids)
            case ("stop",):
                return False
            case _:
                logger.warning(f"Unknown event: {evt!r}")
        return True

    # ========================================================================
    # HANDLERS
    # ========================================================================

    def _handle_input(self, raw: bytes) -> None:
        if not self.device.is_open():
            return
        try:
            report = decode_report(raw, self.layout)
        except ReportDecodeError as exc:
            logger.warning(f"Dropped input report: {exc}")
            return
        if self.dispatcher.handle_report(report, self.snapshot, self._clock()):
            self.refresh_display()

    def _attach_device(self) -> None:
        try:
            self.device.open()
        except PendantConnectionError as exc:
            logger.warning(str(exc))
            self._forget_device()
            return
        self.dispatcher.reset()
        self.refresh_display()

    def _detach_device(self) -> None:
        self.device.close()
        self.queue.reset()
        self._forget_device()

    def _forget_device(self) -> None:
        if self.hotplug is not None:
            self.hotplug.mark_absent()

    def _poll_macro_config(self) -> None:
        if self.macro_config is None:
            return
        macro_ids = self.macro_config.poll(self._clock())
        if macro_ids is not None:
            self.handle_event(("macros", macro_ids))

    def refresh_display(self) -> bool:
        """Encode the current state and send it to the pendant.

        A failed transfer closes and reopens the device once; if that
        also fails the device is treated as detached.
        """
        if not self.device.is_open():
            return False
        status = self.snapshot.status
        frame = encode_display_frame(
            display_positions(self.state, status),
            self.state.feed_rate,
            self.state.spindle_target,
            step_mode=self.state.jog_mode == "step",
            work_coordinates=self.state.coordinate_system == "work",
        )
        reports = packetize(frame)
        try:
            self.device.write_reports(reports)
            return True
        except PendantWriteError as exc:
            logger.warning(f"{exc}; reconnecting pendant")
        self.queue.reset()
        if self.device.reopen():
            self.dispatcher.reset()
            try:
                self.device.write_reports(reports)
                return True
            except PendantWriteError as exc:
                logger.error(f"Display write failed after reconnect: {exc}")
        self._detach_device()
        return False

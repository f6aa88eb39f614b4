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

"""Single-in-flight command queue with G90/G91 bracketing.

Positional jog moves must reach the controller in relative mode (G91)
and every other command in absolute mode (G90). The queue inserts the
mode switch in front of the head whenever its requirement differs from
the mode the last sent command left the controller in.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable

from simple_pendant.state import ControllerState
from simple_pendant.types import CommandKind

from .utils.constants import ACK_LINE, GCODE_ABSOLUTE, GCODE_RELATIVE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedCommand:
    kind: CommandKind
    text: str


class CommandQueue:
    """FIFO of outgoing G-code lines, at most one unacknowledged.

    Example:
        queue = CommandQueue(state, link.write)
        queue.enqueue("position", "G0 X1.5")   # sends G91, holds the move
        queue.acknowledge("ok")                # sends G0 X1.5
    """

    def __init__(self, state: ControllerState, send: Callable[[str], None]):
        self._state = state
        self._send = send
        self._pending: deque[QueuedCommand] = deque()
        self.command_executed = True

    @property
    def pending(self) -> tuple[QueuedCommand, ...]:
        return tuple(self._pending)

    @property
    def in_flight(self) -> bool:
        return not self.command_executed

    def enqueue(self, kind: CommandKind, text: str) -> None:
        self._pending.append(QueuedCommand(kind, text))
        self.drain()

    def enqueue_many(self, kind: CommandKind, lines: Iterable[str]) -> None:
        for line in lines:
            self._pending.append(QueuedCommand(kind, line))
        self.drain()

    def acknowledge(self, line: str) -> bool:
        """Release the in-flight command if `line` is an acknowledgment."""
        if line.strip() != ACK_LINE:
            return False
        self.command_executed = True
        self.drain()
        return True

    def drain(self) -> None:
        if not self.command_executed:
            return
        state = self._state
        if self._pending:
            head = self._pending[0]
            if head.kind == "position" and state.distance_mode == "absolute":
                self._pending.appendleft(QueuedCommand("other", GCODE_RELATIVE))
                state.distance_mode = "relative"
            elif head.kind != "position" and state.distance_mode == "relative":
                self._pending.appendleft(QueuedCommand("other", GCODE_ABSOLUTE))
                state.distance_mode = "absolute"
            self._transmit(self._pending.popleft().text)
        elif state.distance_mode == "relative":
            state.distance_mode = "absolute"
            self._transmit(GCODE_ABSOLUTE)

    def discard_pending(self, kind: CommandKind | None = None) -> int:
        """Drop unsent commands (all, or only those of `kind`)."""
        if kind is None:
            dropped = len(self._pending)
            self._pending.clear()
        else:
            kept = [cmd for cmd in self._pending if cmd.kind != kind]
            dropped = len(self._pending) - len(kept)
            self._pending = deque(kept)
        if dropped:
            logger.debug(f"Discarded {dropped} pending command(s)")
        return dropped

    def reset(self) -> None:
        """Forget pending and in-flight commands after a disconnect or reset.

        The controller comes back in absolute mode.
        """
        self._pending.clear()
        self.command_executed = True
        self._state.distance_mode = "absolute"

    def _transmit(self, text: str) -> None:
        self.command_executed = False
        logger.debug(f"Queue send: {text}")
        self._send(text)

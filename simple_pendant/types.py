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

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, TypeAlias
from typing import Literal

if TYPE_CHECKING:
    from simple_pendant.state import MachineStatus

Axis: TypeAlias = Literal["OFF", "X", "Y", "Z", "A"]
JogMode: TypeAlias = Literal["continuous", "step"]
CoordinateSystem: TypeAlias = Literal["machine", "work"]
MachineState: TypeAlias = Literal["idle", "run", "hold"]
DistanceMode: TypeAlias = Literal["absolute", "relative"]
CommandKind: TypeAlias = Literal["position", "other"]


class ControllerLink(Protocol):
    """Command channel to the motion controller."""

    def send_command(self, name: str, *args: str) -> None: ...
    def write(self, line: str) -> None: ...


class DisplaySink(Protocol):
    def write_reports(self, reports: Sequence[bytes]) -> None: ...


class PendantHandle(DisplaySink, Protocol):
    def is_open(self) -> bool: ...
    def open(self) -> None: ...
    def close(self) -> None: ...
    def reopen(self) -> bool: ...


class EventSink(Protocol):
    def put(self, item: PendantEvent, block: bool = True, timeout: float | None = None) -> None: ...


PendantEvent = (
    tuple[Literal["input"], bytes]
    | tuple[Literal["reply"], str]
    | tuple[Literal["status"], "MachineStatus"]
    | tuple[Literal["settings"], dict[str, float]]
    | tuple[Literal["device"], bool]
    | tuple[Literal["link"], bool, str | None]
    | tuple[Literal["macros"], list[str]]
    | tuple[Literal["stop"]]
)

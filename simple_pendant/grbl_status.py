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

"""Parsing of GRBL 1.1 status reports and settings lines."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from simple_pendant.state import MachineStatus, Position

from .utils.constants import (
    GRBL_ACCEL_SETTINGS,
    GRBL_MAX_RATE_SETTINGS,
    GRBL_SETTING_PAT,
)

logger = logging.getLogger(__name__)
_logged_suppressed: set[tuple[str, str]] = set()


def _log_suppressed(context: str, exc: BaseException) -> None:
    key = (context, type(exc).__name__)
    if key in _logged_suppressed:
        return
    _logged_suppressed.add(key)
    logger.debug("%s: %s", context, exc, exc_info=exc)


@dataclass(slots=True)
class _StatusFields:
    state: str
    wpos: str | None = None
    mpos: str | None = None
    wco: str | None = None
    feed: float | None = None
    spindle: float | None = None


def _parse_status_fields(raw: str) -> _StatusFields:
    parts = raw.strip("<>").split("|")
    fields = _StatusFields(state=parts[0].split(":", 1)[0] if parts else "")
    for part in parts[1:]:
        if part.startswith("WPos:"):
            fields.wpos = part[5:]
        elif part.startswith("MPos:"):
            fields.mpos = part[5:]
        elif part.startswith("WCO:"):
            fields.wco = part[4:]
        elif part.startswith("FS:"):
            try:
                feed_str, spindle_str = part[3:].split(",", 1)
                fields.feed = float(feed_str)
                fields.spindle = float(spindle_str)
            except ValueError as exc:
                _log_suppressed("Failed parsing FS field from status line", exc)
        elif part.startswith("F:"):
            try:
                fields.feed = float(part[2:])
            except ValueError as exc:
                _log_suppressed("Failed parsing F field from status line", exc)
    return fields


def _parse_axes(text: str | None) -> list[float] | None:
    if not text:
        return None
    try:
        return [float(v) for v in text.split(",")]
    except ValueError as exc:
        _log_suppressed("Failed parsing coordinates from status line", exc)
        return None


def _position(values: list[float]) -> Position:
    padded = (values + [0.0, 0.0, 0.0, 0.0])[:4]
    return Position(*padded)


class StatusParser:
    """Turns `<...>` status lines into MachineStatus records.

    GRBL reports either MPos or WPos and only includes WCO every few
    reports, so the last work offset is cached to derive the other frame.
    Feed and spindle carry over from the previous report when absent.
    """

    def __init__(self) -> None:
        self._wco: list[float] | None = None
        self._last = MachineStatus()

    def reset(self) -> None:
        self._wco = None
        self._last = MachineStatus()

    def parse(self, line: str) -> MachineStatus | None:
        if not (line.startswith("<") and line.endswith(">")):
            return None
        fields = _parse_status_fields(line)
        wco = _parse_axes(fields.wco)
        if wco is not None:
            self._wco = wco
        mpos = _parse_axes(fields.mpos)
        wpos = _parse_axes(fields.wpos)
        offset = self._wco
        if mpos is None and wpos is None:
            return None
        if mpos is None:
            assert wpos is not None
            if offset is None:
                mpos = list(wpos)
            else:
                mpos = [w + o for w, o in zip(wpos, offset)]
        if wpos is None:
            if offset is None:
                wpos = list(mpos)
            else:
                wpos = [m - o for m, o in zip(mpos, offset)]
        status = MachineStatus(
            state=fields.state,
            mpos=_position(mpos),
            wpos=_position(wpos),
            feed=self._last.feed if fields.feed is None else fields.feed,
            spindle=self._last.spindle if fields.spindle is None else fields.spindle,
            axis_count=len(mpos),
        )
        self._last = status
        return status


def parse_setting_line(line: str) -> tuple[str, float] | None:
    """Parse a `$N=value` line; None for anything else."""
    match = GRBL_SETTING_PAT.match(line.strip())
    if not match:
        return None
    try:
        return match.group(1), float(match.group(2))
    except ValueError:
        return None


def axis_limits(settings: dict[str, float]) -> tuple[dict[str, float], dict[str, float]]:
    """Split raw `$N` settings into (max rate, acceleration) keyed by axis."""
    max_rate: dict[str, float] = {}
    accel: dict[str, float] = {}
    for key, value in settings.items():
        if key in GRBL_MAX_RATE_SETTINGS:
            max_rate[GRBL_MAX_RATE_SETTINGS[key]] = value
        elif key in GRBL_ACCEL_SETTINGS:
            accel[GRBL_ACCEL_SETTINGS[key]] = value
    return max_rate, accel

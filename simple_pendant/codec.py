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

"""Pendant wire protocol.

Decodes the 8-byte input reports and encodes the display frame that is
sent back to the pendant as six 8-byte feature reports.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass

from .utils.constants import (
    AXIS_SELECTOR_OFFSET,
    BUTTON_FN,
    DISPLAY_FLAG_STEP,
    DISPLAY_FLAG_WORK,
    DISPLAY_MAGIC,
    DISPLAY_PAYLOAD_SIZE,
    DISPLAY_POSITION_SLOTS,
    FEED_SELECTOR_OFFSET,
    INPUT_REPORT_SIZE,
    JOG_DELTA_OFFSET,
    OUTPUT_REPORT_COUNT,
    OUTPUT_REPORT_ID,
    OUTPUT_REPORT_SIZE,
    REPORT_LAYOUT_DEFAULT,
    REPORT_LAYOUTS,
)
from .utils.exceptions import ReportDecodeError
from .utils.validation import validate_report_layout

_FIXED_POINT_SCALE = 10000
_SIGN_BIT = 0x8000
_WORD = struct.Struct("<H")


def round_half_up(value: float, decimals: int = 0) -> float:
    """Round to `decimals` places with halves going toward +infinity."""
    scale = 10 ** decimals
    return math.floor(value * scale + 0.5) / scale


@dataclass(frozen=True)
class ReportLayout:
    name: str
    button_offset: int
    fn_offset: int

    @classmethod
    def named(cls, name: str = REPORT_LAYOUT_DEFAULT) -> "ReportLayout":
        name = validate_report_layout(name)
        button_offset, fn_offset = REPORT_LAYOUTS[name]
        return cls(name=name, button_offset=button_offset, fn_offset=fn_offset)


@dataclass(frozen=True)
class InputReport:
    button: int
    fn_button: int
    feed: int
    axis: int
    jog_delta: int

    @property
    def fn_held(self) -> bool:
        return self.fn_button == BUTTON_FN


def decode_report(data: bytes | bytearray | list[int], layout: ReportLayout) -> InputReport:
    """Decode one raw input report.

    Args:
        data: Raw report bytes as delivered by the HID transport
        layout: Firmware layout giving the button/fn byte offsets

    Returns:
        The decoded report

    Raises:
        ReportDecodeError: If the report is shorter than 8 bytes or not byte data
    """
    try:
        raw = bytes(data)
    except (TypeError, ValueError) as exc:
        raise ReportDecodeError(f"Input report is not byte data: {exc}")
    if len(raw) < INPUT_REPORT_SIZE:
        raise ReportDecodeError(
            f"Input report too short ({len(raw)} of {INPUT_REPORT_SIZE} bytes)", raw
        )
    delta = raw[JOG_DELTA_OFFSET]
    if delta > 127:
        delta -= 256
    return InputReport(
        button=raw[layout.button_offset],
        fn_button=raw[layout.fn_offset],
        feed=raw[FEED_SELECTOR_OFFSET],
        axis=raw[AXIS_SELECTOR_OFFSET],
        jog_delta=delta,
    )


def encode_float(value: float) -> tuple[int, int]:
    """Encode a value as (integer word, fractional word).

    The fractional word carries ten-thousandths in its low 15 bits and the
    sign in bit 15.
    """
    scaled = int(round_half_up(abs(value) * _FIXED_POINT_SCALE))
    int_part = (scaled // _FIXED_POINT_SCALE) & 0xFFFF
    frac_part = scaled % _FIXED_POINT_SCALE
    if value < 0:
        frac_part |= _SIGN_BIT
    return int_part, frac_part


def decode_float(int_part: int, frac_part: int) -> float:
    value = int_part + (frac_part & ~_SIGN_BIT & 0xFFFF) / _FIXED_POINT_SCALE
    if frac_part & _SIGN_BIT:
        return -value
    return value


def encode_word(value: float) -> int:
    return int(value) & 0xFFFF


def encode_display_frame(
    positions: tuple[float, ...],
    feed_rate: float,
    spindle: float,
    *,
    step_mode: bool,
    work_coordinates: bool,
) -> bytes:
    """Build the 42-byte logical display buffer.

    `positions` holds the coordinates of one frame only (X, Y, Z, A);
    unused slots are zero filled.
    """
    if len(positions) > DISPLAY_POSITION_SLOTS:
        raise ValueError(f"At most {DISPLAY_POSITION_SLOTS} positions fit in a display frame")
    status = 0
    if step_mode:
        status |= DISPLAY_FLAG_STEP
    if work_coordinates:
        status |= DISPLAY_FLAG_WORK
    buf = bytearray(DISPLAY_MAGIC)
    buf.append(status)
    slots = list(positions) + [0.0] * (DISPLAY_POSITION_SLOTS - len(positions))
    for value in slots:
        int_part, frac_part = encode_float(round_half_up(value, 3))
        buf += _WORD.pack(int_part)
        buf += _WORD.pack(frac_part)
    buf += _WORD.pack(encode_word(feed_rate))
    buf += _WORD.pack(encode_word(spindle))
    buf += bytes(DISPLAY_PAYLOAD_SIZE - len(buf))
    return bytes(buf)


def packetize(frame: bytes) -> list[bytes]:
    """Split a display buffer into report-id prefixed 8-byte reports."""
    if len(frame) != DISPLAY_PAYLOAD_SIZE:
        raise ValueError(f"Display frame must be {DISPLAY_PAYLOAD_SIZE} bytes, got {len(frame)}")
    chunk = OUTPUT_REPORT_SIZE - 1
    return [
        bytes([OUTPUT_REPORT_ID]) + frame[i * chunk:(i + 1) * chunk]
        for i in range(OUTPUT_REPORT_COUNT)
    ]

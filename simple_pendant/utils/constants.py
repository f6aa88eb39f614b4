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

"""Constants and configuration values for Simple Pendant.

This module centralizes all magic numbers, wire-level values, and default
configuration constants used throughout the application.
"""

import re
from typing import Dict, Optional, Tuple

# ============================================================================
# SERIAL COMMUNICATION CONSTANTS
# ============================================================================

BAUD_DEFAULT = 115200
"""Default baud rate for GRBL serial communication."""

VALID_BAUD_RATES = (9600, 19200, 38400, 57600, 115200, 230400)
"""Common baud rates for GRBL."""

STATUS_POLL_DEFAULT = 0.2
"""Default interval (seconds) between status queries."""

STATUS_POLL_INTERVAL_MIN = 0.05
"""Minimum allowed status poll interval (seconds)."""

STATUS_QUERY_FAILURE_LIMIT = 3
"""Consecutive status query failures before the link is dropped."""

# ============================================================================
# GRBL REAL-TIME COMMAND BYTES
# ============================================================================

RT_RESET = b"\x18"
"""Ctrl-X soft reset."""

RT_STATUS = b"?"
"""Status report query."""

RT_HOLD = b"!"
"""Feed hold (pause)."""

RT_RESUME = b"~"
"""Cycle start / resume."""

# ============================================================================
# GRBL SETTINGS
# ============================================================================

GRBL_MAX_RATE_SETTINGS: Dict[str, str] = {
    "$110": "X",
    "$111": "Y",
    "$112": "Z",
    "$113": "A",
}
"""Axis max rate settings, mm/min."""

GRBL_ACCEL_SETTINGS: Dict[str, str] = {
    "$120": "X",
    "$121": "Y",
    "$122": "Z",
    "$123": "A",
}
"""Axis acceleration settings, mm/sec^2."""

GRBL_SETTING_PAT = re.compile(r"^(\$\d+)=([-+]?(?:\d+(?:\.\d*)?|\.\d+))")
"""Pattern for a `$N=value` settings dump line."""

GRBL_SETTINGS_DUMP = "$$"
"""Request a full settings dump."""

# ============================================================================
# USB / HID CONSTANTS
# ============================================================================

PENDANT_VENDOR_ID = 4302
"""WHB04B-4 vendor id (0x10CE)."""

PENDANT_PRODUCT_ID = 60307
"""WHB04B-4 product id (0xEB93)."""

INPUT_REPORT_SIZE = 8
"""Size of one HID input report in bytes."""

OUTPUT_REPORT_SIZE = 8
"""Size of one HID output (feature) report in bytes."""

OUTPUT_REPORT_ID = 6
"""Report id leading every display packet."""

OUTPUT_REPORT_COUNT = 6
"""Number of output reports per display frame."""

DISPLAY_PAYLOAD_SIZE = OUTPUT_REPORT_COUNT * (OUTPUT_REPORT_SIZE - 1)
"""Logical display buffer length (42 bytes)."""

DISPLAY_MAGIC = b"\xfe\xfd\x0c"
"""Display frame header."""

DISPLAY_POSITION_SLOTS = 6
"""Coordinate slots carried in a display frame."""

DISPLAY_FLAG_STEP = 0x01
"""Status byte bit set while in step jog mode."""

DISPLAY_FLAG_WORK = 0x80
"""Status byte bit set while showing work coordinates."""

HID_READ_TIMEOUT_MS = 250
"""Blocking read timeout for the HID reader thread."""

HOTPLUG_SCAN_INTERVAL = 1.0
"""Seconds between HID enumeration scans."""

FEED_SELECTOR_OFFSET = 4
AXIS_SELECTOR_OFFSET = 5
JOG_DELTA_OFFSET = 6

REPORT_LAYOUTS: Dict[str, Tuple[int, int]] = {
    "fn_first": (3, 2),
    "button_first": (2, 3),
}
"""(button offset, fn offset) per firmware report layout."""

REPORT_LAYOUT_DEFAULT = "fn_first"

# ============================================================================
# PENDANT BUTTON CODES
# ============================================================================

BUTTON_RESET = 1
BUTTON_STOP = 2
BUTTON_START_PAUSE = 3
BUTTON_FEED_PLUS = 4
BUTTON_FEED_MINUS = 5
BUTTON_SPINDLE_PLUS = 6
BUTTON_SPINDLE_MINUS = 7
BUTTON_MACHINE_HOME = 8
BUTTON_SAFE_Z = 9
BUTTON_WORKING_AREA_HOME = 10
BUTTON_SPINDLE_ON_OFF = 11
BUTTON_FN = 12
BUTTON_PROBE_Z = 13
BUTTON_CONTINUOUS = 14
BUTTON_STEP = 15
BUTTON_MACRO_10 = 16

# ============================================================================
# SELECTOR CODES
# ============================================================================

AXIS_CODES: Dict[int, str] = {
    6: "OFF",
    17: "X",
    18: "Y",
    19: "Z",
    20: "A",
}
"""Axis selector byte -> axis name."""

RAMPED_AXES = ("X", "Y", "Z")
"""Axes driven by the continuous jog velocity ramp."""

FEED_STEP_DEFAULT = 13

FEED_STEPS: Dict[int, Tuple[Optional[float], float]] = {
    13: (0.001, 0.02),
    14: (0.01, 0.05),
    15: (0.1, 0.10),
    16: (1.0, 0.30),
    26: (None, 0.60),
    27: (None, 1.00),
    28: (None, 0.0),
}
"""Feed selector byte -> (step distance mm, continuous velocity fraction)."""

FN_MACRO_SLOTS: Dict[int, int] = {
    BUTTON_FEED_PLUS: 0,
    BUTTON_FEED_MINUS: 1,
    BUTTON_SPINDLE_PLUS: 2,
    BUTTON_SPINDLE_MINUS: 3,
    BUTTON_MACHINE_HOME: 4,
    BUTTON_SAFE_Z: 5,
    BUTTON_WORKING_AREA_HOME: 6,
    BUTTON_SPINDLE_ON_OFF: 7,
    BUTTON_PROBE_Z: 8,
    BUTTON_MACRO_10: 9,
}
"""Macro slot run by each button while fn is held."""

# ============================================================================
# CONTROLLER COMMANDS
# ============================================================================

CMD_RESET = "gcode:reset"
CMD_STOP = "gcode:stop"
CMD_START = "gcode:start"
CMD_PAUSE = "gcode:pause"
CMD_RESUME = "gcode:resume"
CMD_HOMING = "homing"
CMD_UNLOCK = "unlock"
CMD_MACRO_LOAD = "macro:load"
CMD_MACRO_RUN = "macro:run"

GCODE_ABSOLUTE = "G90"
GCODE_RELATIVE = "G91"
GCODE_WORKING_AREA_HOME = "G28"
GCODE_SPINDLE_OFF = "M5"
SAFE_Z_COMMAND_DEFAULT = "G53 G0 Z0"

ACK_LINE = "ok"
"""Reply line that releases the in-flight command."""

# ============================================================================
# SPINDLE CONSTANTS
# ============================================================================

SPINDLE_MIN = 5000
SPINDLE_MAX = 25000
SPINDLE_STEP = 500
SPINDLE_DEFAULT = 15000

# ============================================================================
# PROBE-Z CONSTANTS
# ============================================================================

PROBE_DEPTH_DEFAULT = 25.0
"""Maximum probing travel toward the work (mm)."""

PROBE_FEED_DEFAULT = 100.0
"""Probing feed (mm/min)."""

PROBE_PLATE_THICKNESS_DEFAULT = 20.0
"""Touch plate thickness (mm)."""

PROBE_RETRACT_DEFAULT = 5.0
"""Retract distance after touching off (mm)."""

# ============================================================================
# JOG CONSTANTS
# ============================================================================

JOG_DISTANCE_DECIMALS = 3
"""Jog distances are rounded to this many decimals."""

JOG_MAX_DT_MS = 200.0
"""Upper bound for the time step fed to the velocity ramp (ms)."""

# ============================================================================
# EVENT LOOP CONSTANTS
# ============================================================================

EVENT_QUEUE_MAXSIZE = 512
"""Maximum number of ordered events buffered before producers block."""

EVENT_QUEUE_PUT_TIMEOUT = 1.0
"""Seconds a producer waits on a full queue before the event is dropped."""

EVENT_QUEUE_TIMEOUT = 0.1
"""Dispatch loop wake-up interval (seconds)."""

EVENT_QUEUE_DROP_NOTICE_INTERVAL = 1.0
"""Minimum seconds between drop summary log entries."""

# ============================================================================
# MACRO CONSTANTS
# ============================================================================

MACRO_PREFIXES = ("Macro-", "Maccro-")
"""Valid prefixes for macro files."""

MACRO_EXTS = ("", ".txt", ".gcode", ".nc")
"""Valid extensions for macro files."""

MACRO_RELOAD_INTERVAL = 5.0
"""Seconds between macro configuration file checks."""

MACRO_CONFIG_FILENAME = "macros.json"
"""Default macro configuration filename (next to settings)."""

# ============================================================================
# G-CODE CLEANING
# ============================================================================

PAREN_COMMENT_PAT = re.compile(r"\(.*?\)")
"""Pattern to match parenthesis comments."""

# ============================================================================
# SETTINGS CONSTANTS
# ============================================================================

SETTINGS_FILENAME = "settings.json"
"""Filename for application settings."""

SETTINGS_BACKUP_SUFFIX = ".backup"
"""Suffix for settings backup file."""

SETTINGS_TEMP_SUFFIX = ".tmp"
"""Suffix for temporary settings file during write."""

LOCK_FILENAME = "simple_pendant.lock"
"""Single-instance lock file (next to settings)."""

# ============================================================================
# TIMING CONSTANTS
# ============================================================================

THREAD_JOIN_TIMEOUT = 0.5
"""Timeout when joining worker threads (seconds)."""

SERIAL_CONNECT_DELAY = 0.25
"""Delay after opening serial port (seconds)."""

SERIAL_TIMEOUT = 0.1
"""Serial read timeout (seconds)."""

SERIAL_WRITE_TIMEOUT = 0.5
"""Serial write timeout (seconds)."""

TX_QUEUE_TIMEOUT = 0.05
"""TX thread wake-up interval (seconds)."""

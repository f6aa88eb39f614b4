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

"""Custom exceptions for Simple Pendant.

This module defines specific exception types for different error conditions,
enabling better error handling and debugging throughout the application.
"""

from typing import Any, Optional


class SimplePendantException(Exception):
    """Base exception for all Simple Pendant errors."""
    pass


# ============================================================================
# SERIAL COMMUNICATION EXCEPTIONS
# ============================================================================

class SerialException(SimplePendantException):
    """Base exception for serial communication errors."""
    pass


class SerialConnectionError(SerialException):
    """Failed to connect to serial port."""
    pass


class SerialWriteError(SerialException):
    """Failed to write data to serial port."""
    pass


# ============================================================================
# GRBL EXCEPTIONS
# ============================================================================

class GrblException(SimplePendantException):
    """Base exception for GRBL-related errors."""
    pass


class GrblNotConnectedException(GrblException):
    """Attempted operation while not connected to GRBL."""
    pass


# ============================================================================
# PENDANT EXCEPTIONS
# ============================================================================

class PendantException(SimplePendantException):
    """Base exception for pendant (USB HID) errors."""
    pass


class PendantConnectionError(PendantException):
    """Failed to open or claim the pendant."""
    pass


class PendantWriteError(PendantException):
    """Failed to send a display report to the pendant."""
    pass


class ReportDecodeError(PendantException):
    """An input report could not be decoded."""

    def __init__(self, message: str, raw: Optional[bytes] = None):
        super().__init__(message)
        self.raw = raw


# ============================================================================
# MACRO EXCEPTIONS
# ============================================================================

class MacroException(SimplePendantException):
    """Base exception for macro errors."""
    pass


class MacroFileError(MacroException):
    """Error reading macro file."""
    pass


# ============================================================================
# SETTINGS EXCEPTIONS
# ============================================================================

class SettingsException(SimplePendantException):
    """Base exception for settings errors."""
    pass


class SettingsLoadError(SettingsException):
    """Failed to load settings file."""
    pass


class SettingsSaveError(SettingsException):
    """Failed to save settings file."""
    pass


# ============================================================================
# VALIDATION EXCEPTIONS
# ============================================================================

class ValidationException(SimplePendantException):
    """Base exception for validation errors."""
    pass


class InvalidParameterError(ValidationException):
    """Invalid parameter value."""

    def __init__(self, parameter_name: str, value: Any, reason: Optional[str] = None):
        self.parameter_name = parameter_name
        self.value = value
        self.reason = reason

        message = f"Invalid value for '{parameter_name}': {value}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class InvalidRangeError(ValidationException):
    """Value out of valid range."""

    def __init__(self, value, min_val, max_val):
        self.value = value
        self.min_val = min_val
        self.max_val = max_val

        message = f"Value {value} out of range [{min_val}, {max_val}]"
        super().__init__(message)

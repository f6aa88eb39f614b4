"""Validation utilities for Simple Pendant.

This module provides validation functions for settings and command line
values, ensuring data integrity before they reach the hardware.
"""

from typing import Tuple

from .constants import REPORT_LAYOUTS, VALID_BAUD_RATES
from .exceptions import InvalidParameterError, InvalidRangeError


def validate_port_name(port: str) -> str:
    """Validate serial port name.

    Args:
        port: Serial port name (e.g., "COM3" or "/dev/ttyUSB0")

    Returns:
        The validated port name

    Raises:
        InvalidParameterError: If port name is invalid
    """
    if not port or not isinstance(port, str):
        raise InvalidParameterError("port", port, "must be non-empty string")

    port = port.strip()
    if not port:
        raise InvalidParameterError("port", port, "must be non-empty")

    return port


def validate_baud_rate(baud: int) -> int:
    """Validate baud rate.

    Args:
        baud: Baud rate value

    Returns:
        The validated baud rate

    Raises:
        InvalidParameterError: If baud rate is invalid
    """
    try:
        baud = int(baud)
    except (TypeError, ValueError):
        raise InvalidParameterError("baud_rate", baud, "must be integer")

    if baud not in VALID_BAUD_RATES:
        raise InvalidParameterError(
            "baud_rate",
            baud,
            f"must be one of {list(VALID_BAUD_RATES)}"
        )

    return baud


def validate_interval(interval: float, min_val: float = 0.0) -> float:
    """Validate time interval.

    Args:
        interval: Time interval in seconds
        min_val: Minimum allowed value (default 0.0)

    Returns:
        The validated interval

    Raises:
        InvalidParameterError: If interval is invalid
    """
    try:
        interval = float(interval)
    except (TypeError, ValueError):
        raise InvalidParameterError("interval", interval, "must be numeric")

    if interval < min_val:
        raise InvalidParameterError(
            "interval",
            interval,
            f"must be >= {min_val}"
        )

    return interval


def validate_report_layout(layout: str) -> str:
    """Validate an input report layout name.

    Args:
        layout: One of the names in REPORT_LAYOUTS

    Returns:
        The validated layout name

    Raises:
        InvalidParameterError: If the layout is unknown
    """
    if layout not in REPORT_LAYOUTS:
        raise InvalidParameterError(
            "report_layout",
            layout,
            f"must be one of {sorted(REPORT_LAYOUTS)}"
        )
    return layout


def validate_usb_id(value: int, name: str) -> int:
    """Validate a USB vendor/product id (decimal int or "0x" string)."""
    try:
        if isinstance(value, str):
            value = int(value, 0)
        value = int(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(name, value, "must be integer")
    if not (0 <= value <= 0xFFFF):
        raise InvalidRangeError(value, 0, 0xFFFF)
    return value


def validate_spindle_bounds(min_rpm: int, max_rpm: int, step: int) -> Tuple[int, int, int]:
    """Validate spindle target bounds.

    Args:
        min_rpm: Lowest spindle target
        max_rpm: Highest spindle target
        step: Increment applied by spindle +/-

    Returns:
        Tuple of (min_rpm, max_rpm, step)

    Raises:
        InvalidParameterError: If any value is not a positive integer
        InvalidRangeError: If min_rpm is above max_rpm
    """
    values = []
    for name, value in (("spindle_min", min_rpm), ("spindle_max", max_rpm), ("spindle_step", step)):
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise InvalidParameterError(name, value, "must be integer")
        if value <= 0:
            raise InvalidParameterError(name, value, "must be positive")
        values.append(value)
    min_rpm, max_rpm, step = values
    if min_rpm > max_rpm:
        raise InvalidRangeError(min_rpm, 0, max_rpm)
    return min_rpm, max_rpm, step

"""Tests for parameter validation."""

from __future__ import annotations

import pytest

from simple_pendant.utils.exceptions import InvalidParameterError, InvalidRangeError
from simple_pendant.utils.validation import (
    validate_baud_rate,
    validate_interval,
    validate_port_name,
    validate_report_layout,
    validate_spindle_bounds,
    validate_usb_id,
)


def test_port_name() -> None:
    assert validate_port_name(" /dev/ttyUSB0 ") == "/dev/ttyUSB0"
    for bad in ("", "   ", None):
        with pytest.raises(InvalidParameterError):
            validate_port_name(bad)


def test_baud_rate() -> None:
    assert validate_baud_rate("115200") == 115200
    with pytest.raises(InvalidParameterError):
        validate_baud_rate(12345)
    with pytest.raises(InvalidParameterError):
        validate_baud_rate("fast")


def test_interval() -> None:
    assert validate_interval("0.5") == 0.5
    with pytest.raises(InvalidParameterError):
        validate_interval(0.01, min_val=0.05)


def test_report_layout() -> None:
    assert validate_report_layout("button_first") == "button_first"
    with pytest.raises(InvalidParameterError):
        validate_report_layout("both")


def test_usb_id() -> None:
    assert validate_usb_id("0x10CE", "vendor_id") == 0x10CE
    assert validate_usb_id(60307, "product_id") == 60307
    with pytest.raises(InvalidParameterError):
        validate_usb_id("pendant", "vendor_id")
    with pytest.raises(InvalidRangeError):
        validate_usb_id(0x10000, "vendor_id")


def test_spindle_bounds() -> None:
    assert validate_spindle_bounds("5000", 25000, 500) == (5000, 25000, 500)
    with pytest.raises(InvalidParameterError):
        validate_spindle_bounds(5000, 25000, 0)
    with pytest.raises(InvalidRangeError):
        validate_spindle_bounds(30000, 25000, 500)

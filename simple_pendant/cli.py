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

"""Command line entry point."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Optional, Sequence

from filelock import FileLock, Timeout

from simple_pendant import __version__
from simple_pendant.codec import ReportLayout
from simple_pendant.dispatcher import DispatchOptions
from simple_pendant.driver import PendantDriver
from simple_pendant.events import PendantEventQueue
from simple_pendant.grbl_link import GrblLink, list_serial_ports
from simple_pendant.hid_device import HotplugMonitor, PendantDevice, list_pendants
from simple_pendant.macro_config import MacroConfig

from .utils.config import Settings
from .utils.constants import LOCK_FILENAME, MACRO_CONFIG_FILENAME
from .utils.exceptions import (
    SerialConnectionError,
    SettingsLoadError,
    ValidationException,
)
from .utils.logging_config import setup_logging
from .utils.validation import (
    validate_baud_rate,
    validate_interval,
    validate_port_name,
    validate_report_layout,
    validate_spindle_bounds,
    validate_usb_id,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="simple-pendant",
        description="Bridge a WHB04B-4 USB jog pendant to a GRBL controller",
    )
    p.add_argument("--port", help="GRBL serial port (overrides settings)")
    p.add_argument("--baud", type=int, help="Serial baud rate (overrides settings)")
    p.add_argument("--settings", help="Settings JSON file")
    p.add_argument("--macros", help="Macro slot configuration JSON file")
    p.add_argument("--layout", help="Input report layout: fn_first or button_first")
    p.add_argument("--list-devices", action="store_true", help="List pendants and serial ports, then exit")
    p.add_argument("--debug", action="store_true", help="Verbose console logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def apply_overrides(settings: Settings, args: argparse.Namespace) -> None:
    if args.port:
        settings.set("port", args.port)
    if args.baud:
        settings.set("baud_rate", args.baud)
    if args.macros:
        settings.set("macro_config_path", args.macros)
    if args.layout:
        settings.set("report_layout", args.layout)


def dispatch_options(settings: Settings) -> DispatchOptions:
    spindle_min, spindle_max, spindle_step = validate_spindle_bounds(
        settings.get("spindle_min"),
        settings.get("spindle_max"),
        settings.get("spindle_step"),
    )
    return DispatchOptions(
        spindle_min=spindle_min,
        spindle_max=spindle_max,
        spindle_step=spindle_step,
        safe_z_command=str(settings.get("safe_z_command")),
        probe_depth=float(settings.get("probe.depth")),
        probe_feed=float(settings.get("probe.feed")),
        probe_plate_thickness=float(settings.get("probe.plate_thickness")),
        probe_retract=float(settings.get("probe.retract")),
    )


def _settings_dir(settings: Settings) -> str:
    return os.path.dirname(os.path.abspath(settings.filepath))


def _list_devices(vendor_id: int, product_id: int) -> int:
    pendants = list_pendants(vendor_id, product_id)
    print(f"Pendants ({vendor_id:04x}:{product_id:04x}): {len(pendants)}")
    for info in pendants:
        print(f"  {info.get('path', b'')!r} {info.get('product_string') or ''}")
    ports = list_serial_ports()
    print(f"Serial ports: {len(ports)}")
    for port in ports:
        print(f"  {port}")
    return 0


def run(settings: Settings) -> int:
    port = validate_port_name(settings.get("port") or "")
    baud = validate_baud_rate(settings.get("baud_rate"))
    layout = ReportLayout.named(validate_report_layout(settings.get("report_layout")))
    vendor_id = validate_usb_id(settings.get("vendor_id"), "vendor_id")
    product_id = validate_usb_id(settings.get("product_id"), "product_id")
    options = dispatch_options(settings)
    base_dir = _settings_dir(settings)

    events = PendantEventQueue(int(settings.get("event_queue_maxsize")))
    macro_dirs = list(settings.get("macro_dirs") or []) or [os.path.join(base_dir, "macros")]
    link = GrblLink(
        events,
        macro_dirs=macro_dirs,
        status_poll_interval=float(settings.get("status_poll_interval")),
    )
    device = PendantDevice(events, vendor_id, product_id)
    hotplug = HotplugMonitor(
        events,
        vendor_id,
        product_id,
        interval=validate_interval(settings.get("hotplug_scan_interval"), min_val=0.1),
    )
    macro_config = MacroConfig(
        settings.get("macro_config_path") or os.path.join(base_dir, MACRO_CONFIG_FILENAME),
        float(settings.get("macro_reload_interval")),
    )
    driver = PendantDriver(
        events,
        device,
        link,
        layout=layout,
        options=options,
        macro_config=macro_config,
        hotplug=hotplug,
        spindle_default=int(settings.get("spindle_default")),
        jog_max_dt_ms=float(settings.get("jog_max_dt_ms")),
    )

    try:
        link.connect(port, baud)
    except SerialConnectionError as exc:
        logger.error(str(exc))
        return 1
    hotplug.start()
    try:
        driver.run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        hotplug.stop()
        device.close()
        link.disconnect()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    settings = Settings(args.settings)
    try:
        settings.load()
    except SettingsLoadError as exc:
        print(f"ERROR: {exc}")
        return 2
    apply_overrides(settings, args)
    setup_logging(settings.filepath, debug=args.debug)

    try:
        if args.list_devices:
            return _list_devices(
                validate_usb_id(settings.get("vendor_id"), "vendor_id"),
                validate_usb_id(settings.get("product_id"), "product_id"),
            )

        lock = FileLock(os.path.join(_settings_dir(settings), LOCK_FILENAME))
        try:
            lock.acquire(timeout=0.1)
        except Timeout:
            logger.error("Another instance of Simple Pendant is already running.")
            return 1
        try:
            return run(settings)
        finally:
            lock.release()
    except ValidationException as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())

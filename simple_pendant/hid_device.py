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

"""USB HID transport for the pendant (hidapi)."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Sequence

import hid

from simple_pendant.types import EventSink

from .utils.constants import (
    HID_READ_TIMEOUT_MS,
    HOTPLUG_SCAN_INTERVAL,
    INPUT_REPORT_SIZE,
    PENDANT_PRODUCT_ID,
    PENDANT_VENDOR_ID,
    THREAD_JOIN_TIMEOUT,
)
from .utils.exceptions import PendantConnectionError, PendantWriteError

logger = logging.getLogger(__name__)


def list_pendants(
    vendor_id: int = PENDANT_VENDOR_ID,
    product_id: int = PENDANT_PRODUCT_ID,
) -> list[dict[str, Any]]:
    return list(hid.enumerate(vendor_id, product_id))


class PendantDevice:
    """An opened pendant plus the thread reading its input reports.

    Input reports are posted as ("input", bytes); a failed read posts
    ("device", False) and ends the reader.
    """

    def __init__(
        self,
        event_q: EventSink,
        vendor_id: int = PENDANT_VENDOR_ID,
        product_id: int = PENDANT_PRODUCT_ID,
        *,
        read_timeout_ms: int = HID_READ_TIMEOUT_MS,
        device_factory: Callable[[], Any] = hid.device,
    ):
        self.events = event_q
        self.vendor_id = vendor_id
        self.product_id = product_id
        self.read_timeout_ms = int(read_timeout_ms)
        self._device_factory = device_factory
        self._dev: Any | None = None
        self._write_lock = threading.Lock()
        self._stop_evt = threading.Event()
        self._reader: threading.Thread | None = None

    def is_open(self) -> bool:
        return self._dev is not None

    def open(self) -> None:
        """Open the pendant and start reading.

        Raises:
            PendantConnectionError: If the device cannot be opened
        """
        if self._dev is not None:
            return
        dev = self._device_factory()
        try:
            dev.open(self.vendor_id, self.product_id)
            dev.set_nonblocking(0)
        except (OSError, ValueError) as e:
            try:
                dev.close()
            except (OSError, ValueError):
                pass
            raise PendantConnectionError(
                f"Failed to open pendant {self.vendor_id:04x}:{self.product_id:04x}: {e}"
            )
        self._dev = dev
        self._stop_evt = threading.Event()
        self._reader = threading.Thread(
            target=self._read_loop, args=(dev, self._stop_evt), daemon=True, name="Pendant-RX"
        )
        self._reader.start()
        logger.info(f"Pendant opened ({self.vendor_id:04x}:{self.product_id:04x})")

    def close(self) -> None:
        """Stop the reader and release the device. Idempotent."""
        self._stop_evt.set()
        reader = self._reader
        if reader and reader.is_alive() and reader is not threading.current_thread():
            reader.join(timeout=THREAD_JOIN_TIMEOUT + self.read_timeout_ms / 1000.0)
            if reader.is_alive():
                logger.warning(f"Thread {reader.name} did not terminate")
        self._reader = None
        with self._write_lock:
            dev = self._dev
            self._dev = None
            if dev is not None:
                try:
                    dev.close()
                    logger.info("Pendant closed")
                except (OSError, ValueError) as e:
                    logger.error(f"Error closing pendant: {e}")

    def reopen(self) -> bool:
        self.close()
        try:
            self.open()
        except PendantConnectionError as e:
            logger.warning(str(e))
            return False
        return True

    def write_reports(self, reports: Sequence[bytes]) -> None:
        """Send display packets as feature reports.

        Raises:
            PendantWriteError: If the device is closed or a transfer fails
        """
        with self._write_lock:
            dev = self._dev
            if dev is None:
                raise PendantWriteError("Pendant not open")
            for report in reports:
                try:
                    written = dev.send_feature_report(bytes(report))
                except (OSError, ValueError) as e:
                    raise PendantWriteError(f"Display write failed: {e}")
                if written is not None and written < 0:
                    raise PendantWriteError("Display write failed")

    def _read_loop(self, dev: Any, stop_evt: threading.Event) -> None:
        logger.debug("Pendant reader started")
        try:
            while not stop_evt.is_set():
                try:
                    data = dev.read(INPUT_REPORT_SIZE, self.read_timeout_ms)
                except (OSError, ValueError) as e:
                    if not stop_evt.is_set():
                        logger.warning(f"Pendant read error: {e}")
                        self.events.put(("device", False))
                    break
                if data:
                    self.events.put(("input", bytes(data)))
        finally:
            logger.debug("Pendant reader stopped")


class HotplugMonitor:
    """Scans HID enumeration and posts ("device", present) on changes.

    hidapi has no attach/detach callbacks, so presence is polled at a low
    rate; nothing is posted while the answer stays the same.
    """

    def __init__(
        self,
        event_q: EventSink,
        vendor_id: int = PENDANT_VENDOR_ID,
        product_id: int = PENDANT_PRODUCT_ID,
        *,
        interval: float = HOTPLUG_SCAN_INTERVAL,
        enumerate_fn: Callable[[int, int], list[dict[str, Any]]] = hid.enumerate,
    ):
        self.events = event_q
        self.vendor_id = vendor_id
        self.product_id = product_id
        self.interval = float(interval)
        self._enumerate = enumerate_fn
        self._present = False
        self._stop_evt = threading.Event()
        self._thread: threading.Thread | None = None

    def scan(self) -> bool:
        """Enumerate once; post an event if presence changed."""
        try:
            present = bool(self._enumerate(self.vendor_id, self.product_id))
        except OSError as e:
            logger.debug(f"HID enumerate failed: {e}")
            return self._present
        if present != self._present:
            self._present = present
            logger.info(f"Pendant {'attached' if present else 'detached'}")
            self.events.put(("device", present))
        return present

    def mark_absent(self) -> None:
        """Forget the device so the next scan that finds it posts an attach."""
        self._present = False

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_evt = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, args=(self._stop_evt,), daemon=True, name="Pendant-Hotplug"
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_evt.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=THREAD_JOIN_TIMEOUT + self.interval)
        self._thread = None

    def _loop(self, stop_evt: threading.Event) -> None:
        while not stop_evt.is_set():
            self.scan()
            if stop_evt.wait(self.interval):
                break

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

"""Serial link to a GRBL 1.1 controller.

Runs three daemon threads (RX, TX, status poll) and reports everything
it hears as pendant events. Lines are sent one at a time and each waits
for its `ok`/`error:` before the next goes out; replies to lines the
link sends on its own behalf (settings dump, homing, macros) are
consumed here, only replies to `write()` lines are forwarded.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque
from typing import Literal, Optional, Sequence

import serial
from serial.tools import list_ports

from simple_pendant.grbl_status import StatusParser, parse_setting_line
from simple_pendant.macro_files import load_macro
from simple_pendant.types import EventSink

from .utils.constants import (
    ACK_LINE,
    BAUD_DEFAULT,
    CMD_HOMING,
    CMD_MACRO_LOAD,
    CMD_MACRO_RUN,
    CMD_PAUSE,
    CMD_RESET,
    CMD_RESUME,
    CMD_START,
    CMD_STOP,
    CMD_UNLOCK,
    GRBL_SETTINGS_DUMP,
    RT_HOLD,
    RT_RESET,
    RT_RESUME,
    RT_STATUS,
    SERIAL_CONNECT_DELAY,
    SERIAL_TIMEOUT,
    SERIAL_WRITE_TIMEOUT,
    STATUS_POLL_DEFAULT,
    STATUS_POLL_INTERVAL_MIN,
    STATUS_QUERY_FAILURE_LIMIT,
    THREAD_JOIN_TIMEOUT,
    TX_QUEUE_TIMEOUT,
)
from .utils.exceptions import (
    GrblNotConnectedException,
    InvalidParameterError,
    MacroFileError,
    SerialConnectionError,
    SerialWriteError,
)
from .utils.validation import (
    validate_baud_rate,
    validate_interval,
    validate_port_name,
)

logger = logging.getLogger(__name__)
serial_log = logging.getLogger("simple_pendant.serial")

LineOrigin = Literal["client", "command", "macro", "settings"]

_REALTIME_COMMANDS: dict[str, bytes] = {
    CMD_RESET: RT_RESET,
    CMD_STOP: RT_HOLD,
    CMD_PAUSE: RT_HOLD,
    CMD_START: RT_RESUME,
    CMD_RESUME: RT_RESUME,
}

_LINE_COMMANDS: dict[str, str] = {
    CMD_HOMING: "$H",
    CMD_UNLOCK: "$X",
}


def list_serial_ports() -> list[str]:
    """Get list of available serial ports.

    Returns:
        List of port device names
    """
    return [p.device for p in list_ports.comports()]


class GrblLink:
    """Manages serial communication with a GRBL controller.

    Example:
        link = GrblLink(events)
        link.connect("/dev/ttyUSB0")
        link.send_command("unlock")
        link.write("G0 X10")
    """

    def __init__(
        self,
        event_q: EventSink,
        *,
        macro_dirs: Sequence[str] = (),
        status_poll_interval: float = STATUS_POLL_DEFAULT,
    ):
        self.events = event_q
        self.macro_dirs = list(macro_dirs)
        self.ser: Optional[serial.Serial] = None
        self.port: str | None = None

        self._rx_thread: Optional[threading.Thread] = None
        self._tx_thread: Optional[threading.Thread] = None
        self._status_thread: Optional[threading.Thread] = None
        self._stop_evt = threading.Event()
        self._write_lock = threading.Lock()

        self._outgoing_q: queue.Queue[tuple[LineOrigin, str]] = queue.Queue()
        self._awaiting: deque[tuple[LineOrigin, str]] = deque()
        self._awaiting_lock = threading.Lock()
        self._line_done = threading.Event()
        self._line_done.set()

        self._status_poll_interval = validate_interval(
            status_poll_interval, min_val=STATUS_POLL_INTERVAL_MIN
        )
        self._status_query_failures = 0
        self._status_parser = StatusParser()
        self._settings_buf: dict[str, float] = {}
        self._macro_cache: dict[str, list[str]] = {}
        self._ready = False

    def __enter__(self) -> "GrblLink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # ========================================================================
    # CONNECTION
    # ========================================================================

    def connect(self, port: str, baud: int = BAUD_DEFAULT) -> None:
        """Connect to GRBL controller.

        Args:
            port: Serial port name (e.g., 'COM3' or '/dev/ttyUSB0')
            baud: Baud rate (default: 115200)

        Raises:
            SerialConnectionError: If connection fails
            InvalidParameterError: If parameters are invalid
        """
        port = validate_port_name(port)
        baud = validate_baud_rate(baud)

        if self.is_connected():
            self.disconnect()

        self._stop_evt = threading.Event()
        self._ready = False
        self._status_query_failures = 0
        self._reset_line_tracking()
        self._status_parser.reset()

        try:
            self.ser = serial.Serial(
                port,
                baudrate=baud,
                timeout=SERIAL_TIMEOUT,
                write_timeout=SERIAL_WRITE_TIMEOUT,
            )
        except serial.SerialException as e:
            self.ser = None
            raise SerialConnectionError(f"Failed to connect to {port}: {e}")

        # Give GRBL time to reset (some boards reset on connection)
        time.sleep(SERIAL_CONNECT_DELAY)
        try:
            self.ser.reset_input_buffer()
            self.ser.reset_output_buffer()
        except serial.SerialException as e:
            logger.warning(f"Failed to reset buffers: {e}")

        self.port = port
        stop_evt = self._stop_evt
        self._rx_thread = threading.Thread(
            target=self._rx_loop, args=(stop_evt,), daemon=True, name="GRBL-RX"
        )
        self._tx_thread = threading.Thread(
            target=self._tx_loop, args=(stop_evt,), daemon=True, name="GRBL-TX"
        )
        self._status_thread = threading.Thread(
            target=self._status_loop, args=(stop_evt,), daemon=True, name="GRBL-Status"
        )
        self._rx_thread.start()
        self._tx_thread.start()
        self._status_thread.start()

        self.events.put(("link", True, port))
        logger.info(f"Connected to {port} at {baud} baud")

    def disconnect(self) -> None:
        """Stop the worker threads and close the port. Idempotent."""
        self._stop_evt.set()
        was_open = self.ser is not None
        if self.ser is not None:
            try:
                self.ser.close()
                logger.info("Serial port closed")
            except serial.SerialException as e:
                logger.error(f"Error closing serial port: {e}")
            finally:
                self.ser = None

        for thread in (self._rx_thread, self._tx_thread, self._status_thread):
            if thread and thread.is_alive() and thread is not threading.current_thread():
                thread.join(timeout=THREAD_JOIN_TIMEOUT)
                if thread.is_alive():
                    logger.warning(f"Thread {thread.name} did not terminate")
        self._rx_thread = None
        self._tx_thread = None
        self._status_thread = None
        self._reset_line_tracking()
        self._ready = False
        if was_open:
            self.events.put(("link", False, None))

    def is_connected(self) -> bool:
        return self.ser is not None and self.ser.is_open

    def _signal_disconnect(self, reason: str) -> None:
        """Unexpected loss of the port: tear down and tell the driver."""
        logger.error(f"GRBL link lost: {reason}")
        self._stop_evt.set()
        ser = self.ser
        self.ser = None
        if ser is not None:
            try:
                ser.close()
            except serial.SerialException as e:
                logger.debug(f"Close after link loss failed: {e}")
        self._reset_line_tracking()
        self._ready = False
        self.events.put(("link", False, reason))

    # ========================================================================
    # COMMANDS
    # ========================================================================

    def write(self, line: str) -> None:
        """Queue a raw G-code line; its reply is forwarded as a reply event."""
        self._queue_line("client", line)

    def send_command(self, name: str, *args: str) -> None:
        """Issue a named controller command.

        Raises:
            InvalidParameterError: If the command name is unknown
        """
        if name in _REALTIME_COMMANDS:
            if name == CMD_RESET:
                self._reset_line_tracking()
            try:
                self.send_realtime(_REALTIME_COMMANDS[name])
            except GrblNotConnectedException as e:
                logger.warning(f"{name} dropped: {e}")
            except SerialWriteError as e:
                logger.error(f"{name} failed: {e}")
            return
        if name in _LINE_COMMANDS:
            self._queue_line("command", _LINE_COMMANDS[name])
            return
        if name == CMD_MACRO_LOAD:
            self._load_macro(self._macro_arg(name, args))
            return
        if name == CMD_MACRO_RUN:
            self._run_macro(self._macro_arg(name, args))
            return
        raise InvalidParameterError("command", name, "unknown controller command")

    def send_realtime(self, command: bytes) -> None:
        """Send real-time command (no newline).

        Raises:
            GrblNotConnectedException: If not connected
            SerialWriteError: If write fails
        """
        if not self.is_connected():
            raise GrblNotConnectedException("Cannot send real-time command - not connected")
        try:
            with self._write_lock:
                assert self.ser is not None
                self.ser.write(command)
        except serial.SerialTimeoutException as e:
            raise SerialWriteError(f"Write timeout: {e}")
        except serial.SerialException as e:
            raise SerialWriteError(f"Serial write error: {e}")
        if command != RT_STATUS:
            serial_log.debug(f"TX realtime {command!r}")

    @staticmethod
    def _macro_arg(name: str, args: Sequence[str]) -> str:
        if not args or not str(args[0]).strip():
            raise InvalidParameterError("command", name, "macro id required")
        return str(args[0]).strip()

    def _load_macro(self, macro_id: str) -> list[str] | None:
        try:
            lines = load_macro(self.macro_dirs, macro_id)
        except MacroFileError as e:
            logger.warning(str(e))
            self._macro_cache.pop(macro_id, None)
            return None
        self._macro_cache[macro_id] = lines
        logger.info(f"Macro '{macro_id}' loaded ({len(lines)} line(s))")
        return lines

    def _run_macro(self, macro_id: str) -> None:
        lines = self._macro_cache.get(macro_id)
        if lines is None:
            lines = self._load_macro(macro_id)
        if not lines:
            return
        for line in lines:
            self._queue_line("macro", line)

    def _queue_line(self, origin: LineOrigin, line: str) -> None:
        line = line.strip()
        if not line:
            return
        if not self.is_connected():
            logger.warning(f"Cannot send '{line}' - not connected")
            return
        self._outgoing_q.put((origin, line))

    def _reset_line_tracking(self) -> None:
        while True:
            try:
                self._outgoing_q.get_nowait()
            except queue.Empty:
                break
        with self._awaiting_lock:
            self._awaiting.clear()
        self._settings_buf = {}
        self._line_done.set()

    # ========================================================================
    # WORKER THREAD LOOPS
    # ========================================================================

    def _tx_loop(self, stop_evt: threading.Event) -> None:
        logger.debug("TX thread started")
        try:
            while not stop_evt.is_set():
                if not self._line_done.wait(TX_QUEUE_TIMEOUT):
                    continue
                try:
                    origin, line = self._outgoing_q.get(timeout=TX_QUEUE_TIMEOUT)
                except queue.Empty:
                    continue
                if stop_evt.is_set():
                    break
                with self._awaiting_lock:
                    self._awaiting.append((origin, line))
                    self._line_done.clear()
                if not self._write_line(line):
                    break
        except Exception as e:
            logger.error(f"TX thread error: {e}", exc_info=True)
            self._signal_disconnect(f"TX thread error: {e}")
        finally:
            logger.debug("TX thread stopped")

    def _write_line(self, line: str) -> bool:
        ser = self.ser
        if ser is None:
            return False
        try:
            with self._write_lock:
                ser.write((line + "\n").encode("ascii", errors="replace"))
        except serial.SerialTimeoutException as e:
            self._signal_disconnect(f"Serial write timeout: {e}")
            return False
        except serial.SerialException as e:
            self._signal_disconnect(f"Serial write error: {e}")
            return False
        serial_log.info(f"TX {line}")
        return True

    def _rx_loop(self, stop_evt: threading.Event) -> None:
        logger.debug("RX thread started")
        buf = b""
        try:
            while not stop_evt.is_set():
                ser = self.ser
                if ser is None:
                    break
                try:
                    chunk = ser.read(256)
                except serial.SerialException as e:
                    if not stop_evt.is_set():
                        self._signal_disconnect(f"Serial read error: {e}")
                    break
                if not chunk:
                    continue
                buf += chunk
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    line_str = line.decode("utf-8", errors="replace").strip()
                    if line_str:
                        self._handle_rx_line(line_str)
        except Exception as e:
            logger.error(f"RX thread error: {e}", exc_info=True)
            self._signal_disconnect(f"RX thread error: {e}")
        finally:
            logger.debug("RX thread stopped")

    def _status_loop(self, stop_evt: threading.Event) -> None:
        logger.debug("Status thread started")
        while not stop_evt.is_set():
            if self.is_connected():
                try:
                    self.send_realtime(RT_STATUS)
                    self._status_query_failures = 0
                except GrblNotConnectedException:
                    break
                except SerialWriteError as e:
                    self._status_query_failures += 1
                    logger.error(
                        f"Status query error ({self._status_query_failures}/"
                        f"{STATUS_QUERY_FAILURE_LIMIT}): {e}"
                    )
                    if self._status_query_failures >= STATUS_QUERY_FAILURE_LIMIT:
                        self._signal_disconnect(f"Status query error: {e}")
                        break
            if stop_evt.wait(self._status_poll_interval):
                break
        logger.debug("Status thread stopped")

    # ========================================================================
    # RX HANDLING
    # ========================================================================

    def _handle_rx_line(self, line: str) -> None:
        if line.startswith("<") and line.endswith(">"):
            status = self._status_parser.parse(line)
            if status is not None:
                self.events.put(("status", status))
            return

        serial_log.info(f"RX {line}")
        line_lower = line.lower()

        if line_lower.startswith("grbl"):
            self._handle_banner(line)
            return

        setting = parse_setting_line(line)
        if setting is not None:
            key, value = setting
            self._settings_buf[key] = value
            return

        if line_lower.startswith("alarm:"):
            logger.warning(f"GRBL ALARM: {line}")
        elif line_lower.startswith("[msg:"):
            logger.info(f"GRBL message: {line}")

        if line_lower == ACK_LINE or line_lower.startswith("error"):
            origin, sent = self._complete_line()
            if line_lower.startswith("error"):
                logger.warning(f"GRBL error: {line} (for '{sent}')")
            if origin == "settings":
                self._finish_settings_dump()
                return
            if origin not in ("client", None):
                return

        self.events.put(("reply", line))

    def _handle_banner(self, line: str) -> None:
        logger.info(f"GRBL ready: {line}")
        self._reset_line_tracking()
        self._ready = True
        # controller restarted: nothing sent before the banner will be acknowledged
        self.events.put(("link", True, self.port))
        self._queue_line("settings", GRBL_SETTINGS_DUMP)

    def _complete_line(self) -> tuple[LineOrigin | None, str | None]:
        with self._awaiting_lock:
            if self._awaiting:
                origin, sent = self._awaiting.popleft()
            else:
                origin, sent = None, None
            if not self._awaiting:
                self._line_done.set()
        return origin, sent

    def _finish_settings_dump(self) -> None:
        settings = dict(self._settings_buf)
        self._settings_buf = {}
        logger.info(f"GRBL settings received ({len(settings)} value(s))")
        self.events.put(("settings", settings))

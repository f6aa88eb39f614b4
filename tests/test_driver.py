"""Tests for the pendant driver event loop."""

from __future__ import annotations

import struct

import pytest

from conftest import FakeDevice, FakeHotplug, FakeLink
from simple_pendant.driver import PendantDriver
from simple_pendant.events import PendantEventQueue
from simple_pendant.state import MachineStatus, Position
from simple_pendant.utils.constants import BUTTON_SPINDLE_PLUS, BUTTON_STEP


def _raw(button: int = 0, fn: int = 0, feed: int = 27, axis: int = 17, delta: int = 0) -> bytes:
    return bytes([0x04, 0x00, fn, button, feed, axis, delta & 0xFF, 0x00])


def _frame(reports: list[bytes]) -> bytes:
    return b"".join(r[1:] for r in reports)


class Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def hotplug() -> FakeHotplug:
    return FakeHotplug()


@pytest.fixture
def driver(link: FakeLink, device: FakeDevice, hotplug: FakeHotplug, clock: Clock) -> PendantDriver:
    return PendantDriver(PendantEventQueue(), device, link, hotplug=hotplug, clock=clock)


# ---------------------------------------------------------------------------
# Device lifecycle
# ---------------------------------------------------------------------------


class TestDevice:
    def test_attach_writes_display(self, driver: PendantDriver, device: FakeDevice) -> None:
        assert driver.handle_event(("device", True)) is True
        assert device.opened
        assert len(device.frames) == 1
        reports = device.frames[0]
        assert len(reports) == 6
        frame = _frame(reports)
        assert frame[:3] == b"\xfe\xfd\x0c"
        assert struct.unpack_from("<H", frame, 30)[0] == 15000

    def test_detach(self, driver: PendantDriver, device: FakeDevice, hotplug: FakeHotplug) -> None:
        driver.handle_event(("device", True))
        driver.queue.enqueue("other", "M5")
        driver.handle_event(("device", False))
        assert not device.opened
        assert not driver.queue.in_flight
        assert hotplug.forgotten == 1

    def test_write_failure_reopens_and_retries(self, link: FakeLink, hotplug: FakeHotplug, clock: Clock) -> None:
        device = FakeDevice(fail_writes=1)
        driver = PendantDriver(PendantEventQueue(), device, link, hotplug=hotplug, clock=clock)
        driver.handle_event(("device", True))
        assert device.reopen_count == 1
        assert device.opened
        assert len(device.frames) == 1
        assert hotplug.forgotten == 0

    def test_reopen_failure_detaches(self, link: FakeLink, hotplug: FakeHotplug, clock: Clock) -> None:
        device = FakeDevice(fail_writes=1, reopen_ok=False)
        driver = PendantDriver(PendantEventQueue(), device, link, hotplug=hotplug, clock=clock)
        driver.handle_event(("device", True))
        assert not device.opened
        assert device.frames == []
        assert hotplug.forgotten == 1
        assert driver.refresh_display() is False

    def test_input_ignored_while_closed(self, driver: PendantDriver, link: FakeLink) -> None:
        driver.handle_event(("input", _raw(button=BUTTON_SPINDLE_PLUS)))
        assert link.lines == []

    def test_short_input_tolerated(self, driver: PendantDriver, device: FakeDevice) -> None:
        driver.handle_event(("device", True))
        assert driver.handle_event(("input", b"\x04\x00")) is True
        assert len(device.frames) == 1


# ---------------------------------------------------------------------------
# Controller events
# ---------------------------------------------------------------------------


class TestController:
    def test_spindle_press_updates_display(self, driver: PendantDriver, device: FakeDevice, link: FakeLink) -> None:
        driver.handle_event(("device", True))
        driver.handle_event(("input", _raw(button=BUTTON_SPINDLE_PLUS)))
        assert link.lines == ["S15500"]
        assert len(device.frames) == 2
        assert struct.unpack_from("<H", _frame(device.frames[-1]), 30)[0] == 15500

    def test_step_mode_flag(self, driver: PendantDriver, device: FakeDevice) -> None:
        driver.handle_event(("device", True))
        driver.handle_event(("input", _raw(button=BUTTON_STEP)))
        assert _frame(device.frames[-1])[3] == 0x01

    def test_status_refreshes_display(self, driver: PendantDriver, device: FakeDevice) -> None:
        driver.handle_event(("device", True))
        status = MachineStatus(state="Run", mpos=Position(1.5, 0.0, -2.25), feed=750.0, spindle=12000.0)
        driver.handle_event(("status", status))
        assert driver.state.machine_state == "run"
        frame = _frame(device.frames[-1])
        assert struct.unpack_from("<HH", frame, 4) == (1, 5000)
        assert struct.unpack_from("<HH", frame, 12) == (2, 2500 | 0x8000)
        assert struct.unpack_from("<H", frame, 28)[0] == 750

    def test_reply_releases_queue(self, driver: PendantDriver, link: FakeLink) -> None:
        driver.queue.enqueue("other", "M5")
        driver.queue.enqueue("other", "G28")
        driver.handle_event(("reply", "error:2"))
        assert link.lines == ["M5"]
        driver.handle_event(("reply", "ok"))
        assert link.lines == ["M5", "G28"]

    def test_settings_set_axis_limits(self, driver: PendantDriver) -> None:
        driver.handle_event(("settings", {"$110": 3000.0, "$120": 500.0}))
        assert driver.snapshot.max_rate == {"X": 3000.0}
        assert driver.snapshot.accel == {"X": 500.0}

    def test_settings_refresh_display(self, driver: PendantDriver, device: FakeDevice) -> None:
        driver.handle_event(("device", True))
        driver.handle_event(("settings", {"$110": 3000.0}))
        assert len(device.frames) == 2

    def test_continuous_jog_end_to_end(
        self, driver: PendantDriver, link: FakeLink, clock: Clock
    ) -> None:
        driver.handle_event(("device", True))
        driver.handle_event(("settings", {"$110": 3000.0, "$120": 500.0}))
        driver.handle_event(("input", _raw(delta=0)))
        clock.now = 0.05
        driver.handle_event(("input", _raw(delta=5)))
        assert link.lines == ["G91"]
        driver.handle_event(("reply", "ok"))
        assert link.lines == ["G91", "G0 X12.5"]

    def test_link_down_resets_queue(self, driver: PendantDriver) -> None:
        driver.queue.enqueue("position", "G0 X1")
        driver.handle_event(("link", False, "read failed"))
        assert not driver.queue.in_flight
        assert driver.state.distance_mode == "absolute"

    def test_link_up_refreshes(self, driver: PendantDriver, device: FakeDevice) -> None:
        driver.handle_event(("device", True))
        driver.handle_event(("link", True, "/dev/ttyUSB0"))
        assert len(device.frames) == 2

    def test_macros_event(self, driver: PendantDriver) -> None:
        driver.handle_event(("macros", ["park"]))
        assert driver.macros.macro_ids == ("park",)


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------


class TestLoop:
    def test_stop_event(self, driver: PendantDriver) -> None:
        assert driver.handle_event(("stop",)) is False

    def test_unknown_event_kept_running(self, driver: PendantDriver) -> None:
        assert driver.handle_event(("bogus", 1)) is True

    def test_run_processes_until_stop(self, driver: PendantDriver, link: FakeLink) -> None:
        driver.events.put(("device", True))
        driver.events.put(("input", _raw(button=BUTTON_SPINDLE_PLUS)))
        driver.stop()
        driver.run()
        assert link.lines == ["S15500"]

    def test_run_survives_handler_errors(self, driver: PendantDriver, link: FakeLink) -> None:
        driver.events.put(("settings", None))
        driver.events.put(("device", True))
        driver.events.put(("input", _raw(button=BUTTON_SPINDLE_PLUS)))
        driver.stop()
        driver.run()
        assert link.lines == ["S15500"]

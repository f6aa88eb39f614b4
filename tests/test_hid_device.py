"""Tests for the hidapi pendant transport, using a fake device."""

from __future__ import annotations

import time
from typing import Any

import pytest

from conftest import ListSink
from simple_pendant.hid_device import HotplugMonitor, PendantDevice
from simple_pendant.utils.exceptions import PendantConnectionError, PendantWriteError


class FakeHid:
    def __init__(self, reads: list[Any] | None = None, *, open_error: bool = False, write_result: int = 8) -> None:
        self.reads = list(reads or [])
        self.open_error = open_error
        self.write_result = write_result
        self.sent: list[bytes] = []
        self.closed = False

    def open(self, vendor_id: int, product_id: int) -> None:
        if self.open_error:
            raise OSError("open failed")

    def set_nonblocking(self, flag: int) -> None:
        pass

    def read(self, size: int, timeout_ms: int = 0) -> list[int]:
        if self.reads:
            item = self.reads.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        time.sleep(0.005)
        return []

    def send_feature_report(self, data: bytes) -> int:
        self.sent.append(data)
        return self.write_result

    def close(self) -> None:
        self.closed = True


def _wait_for(sink: ListSink, count: int, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while len(sink.items) < count and time.monotonic() < deadline:
        time.sleep(0.005)


class TestPendantDevice:
    def test_open_write_close(self, sink: ListSink) -> None:
        fake = FakeHid()
        dev = PendantDevice(sink, device_factory=lambda: fake, read_timeout_ms=10)
        dev.open()
        assert dev.is_open()
        dev.write_reports([b"\x06" + bytes(7)] * 6)
        assert len(fake.sent) == 6
        dev.close()
        assert not dev.is_open()
        assert fake.closed

    def test_open_failure(self, sink: ListSink) -> None:
        fake = FakeHid(open_error=True)
        dev = PendantDevice(sink, device_factory=lambda: fake)
        with pytest.raises(PendantConnectionError):
            dev.open()
        assert not dev.is_open()
        assert fake.closed

    def test_write_when_closed(self, sink: ListSink) -> None:
        dev = PendantDevice(sink, device_factory=FakeHid)
        with pytest.raises(PendantWriteError):
            dev.write_reports([b"\x06" + bytes(7)])

    def test_negative_write_result(self, sink: ListSink) -> None:
        dev = PendantDevice(sink, device_factory=lambda: FakeHid(write_result=-1), read_timeout_ms=10)
        dev.open()
        try:
            with pytest.raises(PendantWriteError):
                dev.write_reports([b"\x06" + bytes(7)])
        finally:
            dev.close()

    def test_reader_posts_input(self, sink: ListSink) -> None:
        fake = FakeHid([[4, 0, 0, 6, 27, 17, 0, 0]])
        dev = PendantDevice(sink, device_factory=lambda: fake, read_timeout_ms=10)
        dev.open()
        _wait_for(sink, 1)
        dev.close()
        assert sink.items[0] == ("input", bytes([4, 0, 0, 6, 27, 17, 0, 0]))

    def test_read_error_posts_detach(self, sink: ListSink) -> None:
        fake = FakeHid([OSError("read error")])
        dev = PendantDevice(sink, device_factory=lambda: fake, read_timeout_ms=10)
        dev.open()
        _wait_for(sink, 1)
        dev.close()
        assert sink.items == [("device", False)]

    def test_reopen(self, sink: ListSink) -> None:
        devices = [FakeHid(), FakeHid(open_error=True)]
        dev = PendantDevice(sink, device_factory=lambda: devices.pop(0), read_timeout_ms=10)
        dev.open()
        assert dev.reopen() is False
        assert not dev.is_open()


class TestHotplugMonitor:
    def test_posts_only_on_change(self, sink: ListSink) -> None:
        answers = [[{"path": b"1"}], [{"path": b"1"}], [], []]
        monitor = HotplugMonitor(sink, enumerate_fn=lambda vid, pid: answers.pop(0))
        for _ in range(4):
            monitor.scan()
        assert sink.items == [("device", True), ("device", False)]

    def test_mark_absent_allows_reattach(self, sink: ListSink) -> None:
        monitor = HotplugMonitor(sink, enumerate_fn=lambda vid, pid: [{"path": b"1"}])
        monitor.scan()
        monitor.scan()
        monitor.mark_absent()
        monitor.scan()
        assert sink.items == [("device", True), ("device", True)]

    def test_enumerate_error_keeps_state(self, sink: ListSink) -> None:
        def boom(vid: int, pid: int) -> list:
            raise OSError("usb busy")

        monitor = HotplugMonitor(sink, enumerate_fn=boom)
        assert monitor.scan() is False
        assert sink.items == []

    def test_thread_start_stop(self, sink: ListSink) -> None:
        monitor = HotplugMonitor(sink, interval=0.01, enumerate_fn=lambda vid, pid: [{"path": b"1"}])
        monitor.start()
        _wait_for(sink, 1)
        monitor.stop()
        assert sink.items == [("device", True)]

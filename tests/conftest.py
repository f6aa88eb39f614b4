"""Shared fakes for the pendant tests."""

from __future__ import annotations

from typing import Any

import pytest

from simple_pendant.codec import InputReport
from simple_pendant.utils.exceptions import PendantWriteError


class FakeLink:
    """Records named commands and raw lines instead of talking to GRBL."""

    def __init__(self) -> None:
        self.commands: list[tuple[str, ...]] = []
        self.lines: list[str] = []

    def send_command(self, name: str, *args: str) -> None:
        self.commands.append((name, *args))

    def write(self, line: str) -> None:
        self.lines.append(line)


class FakeDevice:
    """Pendant stand-in that records display reports."""

    def __init__(self, *, fail_writes: int = 0, reopen_ok: bool = True) -> None:
        self.opened = False
        self.open_count = 0
        self.close_count = 0
        self.reopen_count = 0
        self.fail_writes = fail_writes
        self.reopen_ok = reopen_ok
        self.frames: list[list[bytes]] = []

    def is_open(self) -> bool:
        return self.opened

    def open(self) -> None:
        self.opened = True
        self.open_count += 1

    def close(self) -> None:
        self.opened = False
        self.close_count += 1

    def reopen(self) -> bool:
        self.reopen_count += 1
        self.close()
        if self.reopen_ok:
            self.open()
        return self.reopen_ok

    def write_reports(self, reports: Any) -> None:
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise PendantWriteError("simulated transfer failure")
        self.frames.append(list(reports))


class FakeHotplug:
    def __init__(self) -> None:
        self.forgotten = 0

    def mark_absent(self) -> None:
        self.forgotten += 1


class ListSink:
    def __init__(self) -> None:
        self.items: list[Any] = []

    def put(self, item: Any, block: bool = True, timeout: float | None = None) -> None:
        self.items.append(item)


def make_report(
    button: int = 0,
    fn: int = 0,
    feed: int = 27,
    axis: int = 17,
    delta: int = 0,
) -> InputReport:
    return InputReport(button=button, fn_button=fn, feed=feed, axis=axis, jog_delta=delta)


@pytest.fixture
def link() -> FakeLink:
    return FakeLink()


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def sink() -> ListSink:
    return ListSink()

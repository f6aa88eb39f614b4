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

import queue
import threading
import time
from collections import deque

from simple_pendant.types import PendantEvent
from simple_pendant.utils.constants import (
    EVENT_QUEUE_DROP_NOTICE_INTERVAL,
    EVENT_QUEUE_MAXSIZE,
    EVENT_QUEUE_PUT_TIMEOUT,
)


class PendantEventQueue:
    """Bounded event queue feeding the single dispatch loop.

    Status reports are coalesced so only the newest one waits; every other
    event keeps strict arrival order. Producers block while the ordered
    lane is full and the event is dropped (and counted) on timeout.
    """

    _COALESCE_KINDS = {"status"}

    def __init__(
        self,
        maxsize: int = EVENT_QUEUE_MAXSIZE,
        *,
        drop_notice_interval: float = EVENT_QUEUE_DROP_NOTICE_INTERVAL,
    ) -> None:
        self._maxsize = max(1, int(maxsize))
        self._drop_notice_interval = float(drop_notice_interval)
        self._ordered: deque[PendantEvent] = deque()
        self._coalesced: dict[str, PendantEvent] = {}
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)
        self._drop_counts: dict[str, int] = {}
        self._last_drop_notice = 0.0

    def put(
        self,
        item: PendantEvent,
        block: bool = True,
        timeout: float | None = EVENT_QUEUE_PUT_TIMEOUT,
    ) -> None:
        kind = item[0]
        with self._lock:
            if kind in self._COALESCE_KINDS:
                self._coalesced[kind] = item
                self._not_empty.notify()
                return
            if len(self._ordered) >= self._maxsize:
                if block:
                    self._not_full.wait_for(
                        lambda: len(self._ordered) < self._maxsize, timeout=timeout
                    )
                if len(self._ordered) >= self._maxsize:
                    self._record_drop(kind)
                    return
            self._ordered.append(item)
            self._not_empty.notify()

    def put_nowait(self, item: PendantEvent) -> None:
        self.put(item, block=False)

    def get(self, block: bool = True, timeout: float | None = None) -> PendantEvent:
        with self._lock:
            if block:
                self._not_empty.wait_for(self._has_items, timeout=timeout)
            if self._ordered:
                item = self._ordered.popleft()
                self._not_full.notify()
                return item
            if self._coalesced:
                _, item = self._coalesced.popitem()
                return item
        raise queue.Empty

    def get_nowait(self) -> PendantEvent:
        return self.get(block=False)

    def empty(self) -> bool:
        with self._lock:
            return not self._has_items()

    def qsize(self) -> int:
        with self._lock:
            return len(self._ordered) + len(self._coalesced)

    def pop_drop_summary(self, now: float | None = None) -> str | None:
        now = time.monotonic() if now is None else now
        with self._lock:
            if not self._drop_counts:
                return None
            if (now - self._last_drop_notice) < self._drop_notice_interval:
                return None
            total = sum(self._drop_counts.values())
            parts = [f"{kind}={count}" for kind, count in sorted(self._drop_counts.items())]
            self._drop_counts = {}
            self._last_drop_notice = now
        return f"[events] Dropped {total} event(s): " + ", ".join(parts)

    def _has_items(self) -> bool:
        return bool(self._ordered or self._coalesced)

    def _record_drop(self, kind: str) -> None:
        self._drop_counts[kind] = self._drop_counts.get(kind, 0) + 1

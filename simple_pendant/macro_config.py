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

"""Macro slot configuration file.

The file is JSON: either a list of macro identifiers or an object with a
"macros" list. Slot N on the pendant runs the Nth identifier.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Callable

from .utils.constants import MACRO_RELOAD_INTERVAL

logger = logging.getLogger(__name__)


def load_macro_ids(path: str) -> list[str]:
    """Read macro identifiers from `path`; problems yield an empty list."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        logger.warning(f"Macro config not found: {path}")
        return []
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning(f"Macro config unreadable ({path}): {exc}")
        return []
    if isinstance(data, dict):
        data = data.get("macros")
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        logger.warning(f"Macro config must be a list of strings: {path}")
        return []
    return [item.strip() for item in data]


class MacroConfig:
    """Polls a macro config file and reloads it when its mtime advances."""

    def __init__(
        self,
        path: str | None,
        reload_interval: float = MACRO_RELOAD_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = path or ""
        self.reload_interval = float(reload_interval)
        self._clock = clock
        self._mtime: float | None = None
        self._last_check: float | None = None
        self._missing_logged = False
        self.macro_ids: list[str] = []

    def poll(self, now: float | None = None) -> list[str] | None:
        """Check the file if the reload interval elapsed.

        Returns:
            The new identifier list when it was (re)loaded, else None
        """
        if not self.path:
            return None
        now = self._clock() if now is None else now
        if self._last_check is not None and (now - self._last_check) < self.reload_interval:
            return None
        self._last_check = now
        try:
            mtime = os.path.getmtime(self.path)
        except OSError:
            if not self._missing_logged:
                logger.warning(f"Macro config not found: {self.path}")
                self._missing_logged = True
            if self.macro_ids:
                self.macro_ids = []
                self._mtime = None
                return []
            return None
        self._missing_logged = False
        if self._mtime is not None and mtime <= self._mtime:
            return None
        self._mtime = mtime
        self.macro_ids = load_macro_ids(self.path)
        logger.info(f"Loaded {len(self.macro_ids)} macro id(s) from {self.path}")
        return list(self.macro_ids)

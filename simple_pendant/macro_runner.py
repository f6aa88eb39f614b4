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

from __future__ import annotations

import logging
from typing import Sequence

from simple_pendant.types import ControllerLink

from .utils.constants import CMD_MACRO_LOAD, CMD_MACRO_RUN

logger = logging.getLogger(__name__)


class MacroRunner:
    """Runs configured macros by pendant slot index.

    Load and run go straight to the controller link; macro bodies are
    opaque, so they are not subject to distance-mode bracketing.
    """

    def __init__(self, link: ControllerLink, macro_ids: Sequence[str] = ()):
        self._link = link
        self._macro_ids: list[str] = list(macro_ids)

    @property
    def macro_ids(self) -> tuple[str, ...]:
        return tuple(self._macro_ids)

    def update(self, macro_ids: Sequence[str]) -> None:
        self._macro_ids = list(macro_ids)
        logger.info(f"Macro slots: {len(self._macro_ids)} configured")

    def run_slot(self, index: int) -> bool:
        if not (0 <= index < len(self._macro_ids)):
            return False
        macro_id = self._macro_ids[index]
        logger.info(f"Running macro slot {index + 1}: {macro_id}")
        self._link.send_command(CMD_MACRO_LOAD, macro_id)
        self._link.send_command(CMD_MACRO_RUN, macro_id)
        return True

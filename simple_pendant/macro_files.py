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

import os
from typing import Sequence

from simple_pendant.utils.constants import MACRO_EXTS, MACRO_PREFIXES, PAREN_COMMENT_PAT
from simple_pendant.utils.exceptions import MacroFileError


def clean_gcode_line(line: str) -> str:
    """Strip comments and whitespace; keep simple + safe."""
    line = line.replace("\ufeff", "")
    line = PAREN_COMMENT_PAT.sub("", line)
    if ";" in line:
        line = line.split(";", 1)[0]
    line = line.strip()
    if line.startswith("%"):
        return ""
    return line


def _is_slot_file(basename: str) -> bool:
    return any(basename.startswith(prefix) for prefix in MACRO_PREFIXES)


def macro_candidates(macro_id: str) -> list[str]:
    names = [f"{macro_id}{ext}" for ext in MACRO_EXTS]
    if macro_id.isdigit():
        for prefix in MACRO_PREFIXES:
            names.extend(f"{prefix}{int(macro_id)}{ext}" for ext in MACRO_EXTS)
    return names


def find_macro_file(macro_dirs: Sequence[str], macro_id: str) -> str | None:
    macro_id = macro_id.strip()
    if not macro_id or os.sep in macro_id or (os.altsep and os.altsep in macro_id):
        return None
    for macro_dir in macro_dirs:
        if not macro_dir or not os.path.isdir(macro_dir):
            continue
        for name in macro_candidates(macro_id):
            path = os.path.join(macro_dir, name)
            if os.path.isfile(path):
                return path
    return None


def read_macro_lines(path: str) -> list[str]:
    """Read the G-code body of a macro file.

    Macro-N slot files carry a name and a tooltip line before the body.
    """
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as handle:
            lines = handle.read().splitlines()
    except OSError as exc:
        raise MacroFileError(f"Failed to read macro {path}: {exc}")
    if _is_slot_file(os.path.basename(path)):
        lines = lines[2:]
    cleaned = (clean_gcode_line(line) for line in lines)
    return [line for line in cleaned if line]


def load_macro(macro_dirs: Sequence[str], macro_id: str) -> list[str]:
    path = find_macro_file(macro_dirs, macro_id)
    if path is None:
        raise MacroFileError(f"Macro '{macro_id}' not found in {list(macro_dirs)}")
    return read_macro_lines(path)

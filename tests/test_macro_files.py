"""Tests for macro file lookup and cleaning."""

from __future__ import annotations

from pathlib import Path

import pytest

from simple_pendant.macro_files import (
    clean_gcode_line,
    find_macro_file,
    load_macro,
    macro_candidates,
)
from simple_pendant.utils.exceptions import MacroFileError


@pytest.mark.parametrize(
    "line, expected",
    [
        ("G0 X1 ; rapid", "G0 X1"),
        ("G1 (feed move) X2 F100", "G1  X2 F100"),
        ("\ufeffG90", "G90"),
        ("%", ""),
        ("   ", ""),
    ],
)
def test_clean_gcode_line(line: str, expected: str) -> None:
    assert clean_gcode_line(line) == expected


def test_numeric_ids_include_slot_names() -> None:
    names = macro_candidates("3")
    assert names[0] == "3"
    assert "Macro-3.txt" in names
    assert "park.nc" in macro_candidates("park")


def test_load_named_macro(tmp_path: Path) -> None:
    (tmp_path / "park.gcode").write_text("G90\nG53 G0 Z0 ; up\n(done)\n", encoding="utf-8")
    assert load_macro([str(tmp_path)], "park") == ["G90", "G53 G0 Z0"]


def test_slot_file_skips_name_and_tooltip(tmp_path: Path) -> None:
    (tmp_path / "Macro-2").write_text("Park\nMove to park\nG28\n", encoding="utf-8")
    assert load_macro([str(tmp_path)], "2") == ["G28"]


def test_first_directory_wins(tmp_path: Path) -> None:
    first = tmp_path / "a"
    second = tmp_path / "b"
    first.mkdir()
    second.mkdir()
    (first / "m.txt").write_text("M5\n", encoding="utf-8")
    (second / "m.txt").write_text("M3\n", encoding="utf-8")
    assert find_macro_file([str(tmp_path / "missing"), str(first), str(second)], "m") == str(first / "m.txt")


def test_path_separators_rejected(tmp_path: Path) -> None:
    (tmp_path / "m.txt").write_text("M5\n", encoding="utf-8")
    assert find_macro_file([str(tmp_path.parent)], f"{tmp_path.name}/m") is None


def test_missing_macro(tmp_path: Path) -> None:
    with pytest.raises(MacroFileError):
        load_macro([str(tmp_path)], "nothing")

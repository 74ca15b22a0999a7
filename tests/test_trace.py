#!/usr/bin/env python3
"""
Golden trace file loading and saving.
"""

import pytest

from deltapid import TraceFileError, f32, load_trace, save_trace


def test_loads_bundled_golden_trace(golden_path):
    values = load_trace(golden_path)
    assert len(values) == 100
    assert values[0] == pytest.approx(11.04)
    assert all(-12.0 <= v <= 12.0 for v in values)


def test_any_whitespace_separates_values(tmp_path):
    path = tmp_path / "y.txt"
    path.write_text("1.5 2.5\n\n  -3e-2\t4\n")
    assert load_trace(path) == [1.5, 2.5, -0.03, 4.0]


def test_missing_file(tmp_path):
    with pytest.raises(TraceFileError, match="not found"):
        load_trace(tmp_path / "absent.txt")


def test_empty_file(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("\n  \n")
    with pytest.raises(TraceFileError, match="empty"):
        load_trace(path)


def test_malformed_token(tmp_path):
    path = tmp_path / "bad.txt"
    path.write_text("1.0\n2.0\nthree\n")
    with pytest.raises(TraceFileError, match="three"):
        load_trace(path)


def test_saved_float32_values_reload_exactly(tmp_path):
    values = [f32(v) for v in (11.04, -0.1, 1.0 / 3.0, 6.73418903, 0.0)]
    path = tmp_path / "out" / "y.txt"
    save_trace(path, values)
    assert len(path.read_text().splitlines()) == len(values)
    assert [f32(v) for v in load_trace(path)] == values

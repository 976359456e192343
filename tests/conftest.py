"""Shared pytest fixtures for the Sprig test suite."""

from __future__ import annotations

import pytest

MAIN_SOURCE = """\
imp std:io

type Point = { i32 x, i32 y }

fun main -> i32 {
    let p = #Point { x = 1, y = 2 }
    io:print.(p.x)
    return 0
}
"""


@pytest.fixture
def tmp_project(tmp_path):
    """Create a minimal sprig project in a temp dir."""
    (tmp_path / "sprig.toml").write_text(
        '[package]\nname = "testproj"\nversion = "1.0.0"\n'
        "[parser]\nrecover = true\nmax_errors = 10\n"
    )
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.sg").write_text(MAIN_SOURCE)
    return tmp_path

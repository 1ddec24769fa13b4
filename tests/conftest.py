from __future__ import annotations

import re
from typing import Callable, List

import pytest

_CSI = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def render_screen(output: str) -> List[str]:
    """Replay terminal bytes onto a grid of rows.

    Understands newline, carriage return, cursor-up and erase-to-end-of-line;
    colour sequences are dropped.
    """

    rows = [""]
    row = col = 0
    index = 0
    while index < len(output):
        char = output[index]
        if char == "\x1b":
            match = _CSI.match(output, index)
            assert match is not None, f"unknown escape at {index}: {output[index:]!r}"
            final = match.group(0)[-1]
            if final == "A":
                row = max(row - 1, 0)
            elif final == "K":
                rows[row] = rows[row][:col]
            index = match.end()
            continue
        if char == "\n":
            row += 1
            col = 0
            if row == len(rows):
                rows.append("")
        elif char == "\r":
            col = 0
        else:
            line = rows[row].ljust(col)
            rows[row] = line[:col] + char + line[col + 1 :]
            col += 1
        index += 1
    return rows


@pytest.fixture
def screen() -> Callable[[str], List[str]]:
    return render_screen

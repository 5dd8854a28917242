# tests/conftest.py
import sys
from pathlib import Path

import pytest

# Add project root to sys.path so the top-level modules can be imported in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from board import Board  # noqa: E402
from session import GameSession  # noqa: E402

SOLUTION = [
    [5, 3, 4, 6, 7, 8, 9, 1, 2],
    [6, 7, 2, 1, 9, 5, 3, 4, 8],
    [1, 9, 8, 3, 4, 2, 5, 6, 7],
    [8, 5, 9, 7, 6, 1, 4, 2, 3],
    [4, 2, 6, 8, 5, 3, 7, 9, 1],
    [7, 1, 3, 9, 2, 4, 8, 5, 6],
    [9, 6, 1, 5, 3, 7, 2, 8, 4],
    [2, 8, 7, 4, 1, 9, 6, 3, 5],
    [3, 4, 5, 2, 8, 6, 1, 7, 9],
]

BLANKS = [(0, 0), (0, 4), (1, 1), (4, 4), (8, 8)]


def puzzle_with_blanks(blanks):
    initial = [row[:] for row in SOLUTION]
    for r, c in blanks:
        initial[r][c] = 0
    return initial


@pytest.fixture
def solution():
    return [row[:] for row in SOLUTION]


@pytest.fixture
def make_session():
    def make(blanks=BLANKS, **kwargs):
        board = Board(puzzle_with_blanks(blanks), SOLUTION)
        return GameSession(board, **kwargs)
    return make


@pytest.fixture
def session(make_session):
    return make_session()

# tests/test_game.py
import random

import pytest

from config import DIFFICULTY_REMOVALS
from game import (SudokuGenerator, count_solutions, empty_grid, fill_diagonal_boxes,
                  fill_grid, is_solved_grid, is_valid)


def test_is_valid_on_empty_grid():
    grid = empty_grid()
    assert all(is_valid(grid, 4, 4, d) for d in range(1, 10))


def test_is_valid_rejects_row_column_and_box_conflicts():
    grid = empty_grid()
    grid[0][8] = 5   # same row as (0, 0)
    grid[7][1] = 6   # same column as (0, 1)
    grid[2][2] = 7   # same box as (0, 0)
    assert not is_valid(grid, 0, 0, 5)
    assert not is_valid(grid, 0, 1, 6)
    assert not is_valid(grid, 0, 0, 7)
    assert is_valid(grid, 0, 0, 1)


def test_is_valid_ignores_the_cell_itself(solution):
    assert is_valid(solution, 3, 3, solution[3][3])


def test_fill_diagonal_boxes_places_permutations():
    grid = empty_grid()
    fill_diagonal_boxes(grid, random.Random(3))
    for start in (0, 3, 6):
        box = [grid[start + i][start + j] for i in range(3) for j in range(3)]
        assert sorted(box) == list(range(1, 10))
    assert grid[0][3] == 0 and grid[3][0] == 0


def test_fill_grid_completes_empty_grid():
    grid = empty_grid()
    assert fill_grid(grid, random.Random(7))
    assert is_solved_grid(grid)


def test_fill_grid_reports_dead_end_and_leaves_cell_empty():
    grid = empty_grid()
    grid[0][:8] = [1, 2, 3, 4, 5, 6, 7, 8]
    grid[1][8] = 9
    assert not fill_grid(grid, random.Random(0))
    assert grid[0][8] == 0


@pytest.mark.parametrize("seed", [0, 1, 2, 42])
def test_generated_solutions_are_valid(seed):
    generator = SudokuGenerator('hard', rng=random.Random(seed))
    assert is_solved_grid(generator.get_solution())


@pytest.mark.parametrize("level", sorted(DIFFICULTY_REMOVALS))
def test_puzzle_givens_match_difficulty(level):
    initial, solution = SudokuGenerator(level, rng=random.Random(11)).generate()
    givens = sum(1 for row in initial for v in row if v)
    assert givens == 81 - DIFFICULTY_REMOVALS[level]
    for r in range(9):
        assert initial[r] is not solution[r]
        for c in range(9):
            assert initial[r][c] in (0, solution[r][c])


def test_easy_puzzle_has_51_givens():
    initial, _ = SudokuGenerator('easy').generate()
    assert sum(1 for row in initial for v in row if v) == 51


def test_same_seed_gives_same_puzzle():
    first = SudokuGenerator('medium', rng=random.Random(5)).generate()
    second = SudokuGenerator('medium', rng=random.Random(5)).generate()
    assert first == second


def test_unknown_level_uses_easy_removals():
    initial, _ = SudokuGenerator('nightmare', rng=random.Random(1)).generate()
    assert sum(1 for row in initial for v in row if v) == 81 - DIFFICULTY_REMOVALS['easy']


def test_count_solutions(solution):
    assert count_solutions(solution) == 1
    solution[0][0] = 0
    assert count_solutions(solution) == 1
    assert count_solutions(empty_grid()) == 2


def test_unique_mode_keeps_a_single_completion():
    initial, solution = SudokuGenerator('easy', rng=random.Random(9), unique=True).generate()
    assert count_solutions(initial) == 1
    assert sum(1 for row in initial for v in row if v) >= 81 - DIFFICULTY_REMOVALS['easy']

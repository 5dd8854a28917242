import logging
import random

from config import DIFFICULTY_REMOVALS, DEFAULT_LEVEL

log = logging.getLogger(__name__)

SIZE = 9
BOX = 3
DIGITS = range(1, SIZE + 1)


def empty_grid():
    return [[0 for _ in range(SIZE)] for _ in range(SIZE)]


def copy_grid(grid):
    return [row[:] for row in grid]


def is_valid(grid, row, col, digit):
    """Return True if ``digit`` can go at (row, col) without repeating in
    its row, column or box. The cell itself is not compared."""
    for i in range(SIZE):
        if i != col and grid[row][i] == digit:
            return False
        if i != row and grid[i][col] == digit:
            return False

    box_row = (row // BOX) * BOX
    box_col = (col // BOX) * BOX
    for i in range(box_row, box_row + BOX):
        for j in range(box_col, box_col + BOX):
            if (i, j) != (row, col) and grid[i][j] == digit:
                return False
    return True


def find_empty(grid):
    for i in range(SIZE):
        for j in range(SIZE):
            if grid[i][j] == 0:
                return (i, j)  # row, col
    return None


def fill_diagonal_boxes(grid, rng=random):
    # The three diagonal boxes share no row, column or box, so each one
    # can take any permutation independently.
    for start in range(0, SIZE, BOX):
        nums = list(DIGITS)
        rng.shuffle(nums)
        for i in range(BOX):
            for j in range(BOX):
                grid[start + i][start + j] = nums[i * BOX + j]


def fill_grid(grid, rng=random):
    """Fill every empty cell of ``grid`` in place by backtracking.

    Cells are visited in row-major order and each one tries the digits in
    a freshly shuffled order. The search keeps its own stack of remaining
    candidates per cell instead of recursing. Returns False (with the empty
    cells cleared again) if the grid cannot be completed.
    """
    empties = [(r, c) for r in range(SIZE) for c in range(SIZE) if grid[r][c] == 0]
    remaining = [None] * len(empties)

    depth = 0
    while 0 <= depth < len(empties):
        row, col = empties[depth]
        if remaining[depth] is None:
            nums = list(DIGITS)
            rng.shuffle(nums)
            remaining[depth] = nums

        grid[row][col] = 0
        placed = False
        while remaining[depth]:
            num = remaining[depth].pop()
            if is_valid(grid, row, col, num):
                grid[row][col] = num
                placed = True
                break

        if placed:
            depth += 1
        else:
            remaining[depth] = None
            depth -= 1  # Backtrack

    return depth == len(empties)


def count_solutions(grid, limit=2):
    """Count completions of ``grid``, stopping once ``limit`` is reached."""
    board = copy_grid(grid)

    def count(board):
        find = find_empty(board)
        if not find:
            return 1
        row, col = find

        total = 0
        for num in DIGITS:
            if is_valid(board, row, col, num):
                board[row][col] = num
                total += count(board)
                board[row][col] = 0
                if total >= limit:
                    return total
        return total

    return count(board)


def is_solved_grid(grid):
    """True if every row, column and box holds each digit exactly once."""
    expected = set(DIGITS)
    for i in range(SIZE):
        if set(grid[i]) != expected:
            return False
        if {grid[r][i] for r in range(SIZE)} != expected:
            return False
    for box_row in range(0, SIZE, BOX):
        for box_col in range(0, SIZE, BOX):
            box = {grid[box_row + i][box_col + j] for i in range(BOX) for j in range(BOX)}
            if box != expected:
                return False
    return True


class SudokuGenerator:
    def __init__(self, level=DEFAULT_LEVEL, rng=None, unique=False):
        self.level = level
        self.rng = rng or random.Random()
        self.unique = unique
        self.solution = empty_grid()
        self._generate_solution()

    def _generate_solution(self):
        board = empty_grid()
        fill_diagonal_boxes(board, self.rng)
        if not fill_grid(board, self.rng):
            # Diagonal boxes never block a completion, so this is a bug.
            raise RuntimeError("Could not complete a sudoku solution")
        self.solution = board

    @property
    def squares_to_remove(self):
        if self.level not in DIFFICULTY_REMOVALS:
            log.warning("Unknown difficulty %r, using %s", self.level, DEFAULT_LEVEL)
            return DIFFICULTY_REMOVALS[DEFAULT_LEVEL]
        return DIFFICULTY_REMOVALS[self.level]

    def get_puzzle(self):
        if self.unique:
            return self._remove_keeping_unique(self.squares_to_remove)
        return self._remove_random(self.squares_to_remove)

    def _remove_random(self, squares_to_remove):
        puzzle = copy_grid(self.solution)
        removed = 0
        while removed < squares_to_remove:
            r = self.rng.randrange(SIZE)
            c = self.rng.randrange(SIZE)
            if puzzle[r][c] != 0:
                puzzle[r][c] = 0
                removed += 1
        return puzzle

    def _remove_keeping_unique(self, squares_to_remove):
        puzzle = copy_grid(self.solution)
        cells = [(r, c) for r in range(SIZE) for c in range(SIZE)]
        self.rng.shuffle(cells)

        removed = 0
        for r, c in cells:
            if removed >= squares_to_remove:
                break

            backup = puzzle[r][c]
            puzzle[r][c] = 0
            if count_solutions(puzzle) != 1:
                puzzle[r][c] = backup
            else:
                removed += 1

        if removed < squares_to_remove:
            log.info("Unique %s puzzle stopped at %d of %d removals",
                     self.level, removed, squares_to_remove)
        return puzzle

    def get_solution(self):
        return copy_grid(self.solution)

    def generate(self):
        """Return ``(initial, solution)`` as independent grids."""
        initial = self.get_puzzle()
        log.debug("Generated %s puzzle with %d givens", self.level,
                  sum(1 for row in initial for v in row if v))
        return initial, self.get_solution()

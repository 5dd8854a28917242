from collections import deque

from config import HISTORY_LIMIT
from game import BOX, SIZE, copy_grid


def peers(row, col):
    """Every other cell sharing the row, column or box of (row, col)."""
    cells = set()
    for i in range(SIZE):
        cells.add((row, i))
        cells.add((i, col))
    box_row = (row // BOX) * BOX
    box_col = (col // BOX) * BOX
    for i in range(box_row, box_row + BOX):
        for j in range(box_col, box_col + BOX):
            cells.add((i, j))
    cells.discard((row, col))
    return cells


class Board:
    """The live grid together with the puzzle as dealt and its solution."""

    def __init__(self, initial, solution, grid=None):
        self.initial = copy_grid(initial)
        self.solution = copy_grid(solution)
        self.grid = copy_grid(grid if grid is not None else initial)

    def is_fixed(self, row, col):
        return self.initial[row][col] != 0

    def fix(self, row, col):
        value = self.solution[row][col]
        self.grid[row][col] = value
        self.initial[row][col] = value
        return value

    def is_full(self):
        return all(all(cell != 0 for cell in row) for row in self.grid)

    def matches_solution(self):
        return self.grid == self.solution

    def filled_count(self):
        return sum(1 for row in self.grid for cell in row if cell != 0)


class NoteTracker:
    def __init__(self, notes=None):
        self.notes = [[set() for _ in range(SIZE)] for _ in range(SIZE)]
        if notes:
            for r, row in enumerate(notes):
                for c, cell in enumerate(row):
                    self.notes[r][c] = set(cell or ())

    def get(self, row, col):
        return self.notes[row][col]

    def toggle(self, row, col, digit):
        cell = self.notes[row][col]
        if digit in cell:
            cell.discard(digit)
        else:
            cell.add(digit)
        return digit in cell

    def clear(self, row, col):
        self.notes[row][col].clear()

    def clear_cascade(self, row, col, digit):
        """Empty the notes of (row, col) and strip ``digit`` from its peers."""
        self.clear(row, col)
        for r, c in peers(row, col):
            self.notes[r][c].discard(digit)

    def to_list(self):
        return [[sorted(cell) for cell in row] for row in self.notes]

    @classmethod
    def from_list(cls, data):
        return cls(data)


class HistoryEntry:
    def __init__(self, row, col, value, prev_value):
        self.row = row
        self.col = col
        self.value = value
        self.prev_value = prev_value

    def to_dict(self):
        return {"type": "input", "r": self.row, "c": self.col,
                "val": self.value, "prevVal": self.prev_value}

    @classmethod
    def from_dict(cls, data):
        return cls(data["r"], data["c"], data["val"], data["prevVal"])


class HistoryStack:
    """Undo log that forgets its oldest entry once it holds ``limit`` moves."""

    def __init__(self, entries=(), limit=HISTORY_LIMIT):
        self.entries = deque(entries, maxlen=limit)

    def __len__(self):
        return len(self.entries)

    def push(self, entry):
        self.entries.append(entry)

    def pop(self):
        if not self.entries:
            return None
        return self.entries.pop()

    def to_list(self):
        return [entry.to_dict() for entry in self.entries]

    @classmethod
    def from_list(cls, data, limit=HISTORY_LIMIT):
        # Older saves may carry non-input entries; only grid edits are undoable.
        entries = [HistoryEntry.from_dict(item) for item in data or ()
                   if item.get("type", "input") == "input"]
        return cls(entries, limit)

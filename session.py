"""Single-player game session.

A :class:`GameSession` owns everything one game needs: the board, the
player's notes, the undo log and the score/mistake/timer bookkeeping. Every
player action is a method that mutates the session and returns a
:class:`MoveOutcome` listing what happened (``mistake``, ``score``, ``win``,
...), so transports and renderers only have to replay those effects.
"""
import datetime
import logging
import threading

from board import Board, HistoryEntry, HistoryStack, NoteTracker
from config import (CORRECT_BONUS, DEFAULT_LEVEL, HINT_COST, MAX_MISTAKES,
                    MISTAKE_PENALTY, SAVE_EVERY_TICKS)
from errors import InvalidMove, RejectedAction
from game import SIZE, SudokuGenerator

log = logging.getLogger(__name__)


class MoveOutcome:
    def __init__(self, row=None, col=None, value=None):
        self.row = row
        self.col = col
        self.value = value
        self.is_correct = None
        self.changed = False
        self.events = []

    def emit(self, name, **payload):
        self.events.append((name, payload))

    def event_names(self):
        return [name for name, _ in self.events]

    def to_dict(self):
        return {"row": self.row, "col": self.col, "value": self.value,
                "is_correct": self.is_correct}


class GameSession:
    def __init__(self, board, level=DEFAULT_LEVEL, notes=None, history=None,
                 score=0, timer=0, mistakes=0, is_note_mode=False,
                 is_paused=False, is_game_over=False, selected=None):
        self.board = board
        self.level = level
        self.notes = notes if notes is not None else NoteTracker()
        self.history = history if history is not None else HistoryStack()
        self.score = score
        self.timer = timer
        self.mistakes = mistakes
        self.is_note_mode = is_note_mode
        self.is_paused = is_paused
        self.is_game_over = is_game_over
        self.selected = selected
        self.won = None
        # Held by whoever mutates the session: socket handlers and the ticker.
        self.lock = threading.Lock()

    @classmethod
    def new(cls, level=DEFAULT_LEVEL, rng=None, unique=False):
        generator = SudokuGenerator(level=level, rng=rng, unique=unique)
        initial, solution = generator.generate()
        log.info("New %s game with %d givens", level,
                 sum(1 for row in initial for v in row if v))
        return cls(Board(initial, solution), level=level)

    # --- Input checks ---

    @staticmethod
    def _check_cell(row, col):
        if not all(isinstance(v, int) and not isinstance(v, bool) and 0 <= v < SIZE
                   for v in (row, col)):
            raise InvalidMove(f"No such cell: ({row}, {col})")

    @staticmethod
    def _check_digit(digit):
        if not isinstance(digit, int) or isinstance(digit, bool) or not 0 <= digit <= SIZE:
            raise InvalidMove(f"Not a digit: {digit!r}")

    def _selected_cell(self):
        if self.selected is None:
            raise RejectedAction("Select a cell first")
        return self.selected

    # --- Player actions ---

    def select(self, row, col):
        self._check_cell(row, col)
        if self.is_game_over:
            return False
        self.selected = (row, col)
        return True

    def toggle_note_mode(self):
        self.is_note_mode = not self.is_note_mode
        return self.is_note_mode

    def input_number(self, digit):
        self._check_digit(digit)
        if self.is_game_over:
            return MoveOutcome()
        row, col = self._selected_cell()
        return self.apply_move(row, col, digit)

    def erase(self):
        return self.input_number(0)

    def apply_move(self, row, col, digit):
        self._check_cell(row, col)
        self._check_digit(digit)
        outcome = MoveOutcome(row, col, digit)

        if self.is_game_over or self.board.is_fixed(row, col):
            return outcome

        if self.is_note_mode:
            # Notes only belong to empty cells.
            if self.board.grid[row][col] != 0:
                return outcome
            if digit == 0:
                self.notes.clear(row, col)
            else:
                self.notes.toggle(row, col, digit)
            outcome.changed = True
            outcome.emit("notes", row=row, col=col,
                         notes=sorted(self.notes.get(row, col)))
            return outcome

        prev_value = self.board.grid[row][col]
        if digit == prev_value:
            return outcome

        self.history.push(HistoryEntry(row, col, digit, prev_value))
        self.board.grid[row][col] = digit
        outcome.changed = True

        if digit == 0:
            outcome.emit("erased", row=row, col=col)
            return outcome

        if digit != self.board.solution[row][col]:
            outcome.is_correct = False
            self._register_mistake(outcome)
        else:
            outcome.is_correct = True
            self.score += CORRECT_BONUS
            outcome.emit("score", score=self.score, delta=CORRECT_BONUS)
            self.notes.clear_cascade(row, col, digit)
            self.check_completion(outcome)
        return outcome

    def _register_mistake(self, outcome):
        self.mistakes += 1
        before = self.score
        self.score = max(0, self.score - MISTAKE_PENALTY)
        outcome.emit("mistake", row=outcome.row, col=outcome.col,
                     mistakes=self.mistakes, max_mistakes=MAX_MISTAKES)
        outcome.emit("score", score=self.score, delta=self.score - before)
        if self.mistakes >= MAX_MISTAKES:
            self._finish(outcome, won=False)

    def use_hint(self):
        if self.is_game_over:
            return MoveOutcome()
        if self.score < HINT_COST:
            raise RejectedAction(f"Not enough points! Need {HINT_COST}")
        row, col = self._selected_cell()
        if self.board.grid[row][col] != 0:
            raise RejectedAction("Cell already filled")

        self.score -= HINT_COST
        value = self.board.fix(row, col)
        self.notes.clear(row, col)

        outcome = MoveOutcome(row, col, value)
        outcome.is_correct = True
        outcome.changed = True
        outcome.emit("hint", row=row, col=col, value=value)
        outcome.emit("score", score=self.score, delta=-HINT_COST)
        self.check_completion(outcome)
        return outcome

    def undo(self):
        """Put back the value replaced by the latest move.

        Only the grid is rolled back; score, mistakes and notes keep
        whatever the undone move did to them.
        """
        if self.is_game_over:
            return MoveOutcome()

        entry = self.history.pop()
        # A hint may have fixed the cell since the move was made.
        while entry is not None and self.board.is_fixed(entry.row, entry.col):
            entry = self.history.pop()
        if entry is None:
            return MoveOutcome()

        self.board.grid[entry.row][entry.col] = entry.prev_value
        self.selected = (entry.row, entry.col)
        outcome = MoveOutcome(entry.row, entry.col, entry.prev_value)
        outcome.changed = True
        outcome.emit("undo", row=entry.row, col=entry.col, value=entry.prev_value)
        return outcome

    def pause(self):
        if self.is_game_over:
            return False
        self.is_paused = True
        return True

    def resume(self):
        self.is_paused = False

    # --- Completion ---

    def check_completion(self, outcome=None):
        outcome = outcome if outcome is not None else MoveOutcome()
        if self.board.is_full() and self.board.matches_solution():
            self._finish(outcome, won=True)
        return outcome

    def high_score_record(self):
        return {"score": self.score,
                "date": datetime.date.today().isoformat(),
                "level": self.level}

    def _finish(self, outcome, won):
        self.is_game_over = True
        self.won = won
        if won:
            log.info("Game won: level=%s score=%d time=%ds", self.level, self.score, self.timer)
            outcome.emit("win", record=self.high_score_record())
        else:
            log.info("Game lost after %d mistakes: level=%s", self.mistakes, self.level)
            outcome.emit("loss", mistakes=self.mistakes)
        outcome.emit("game_over", won=won, score=self.score, timer=self.timer)

    # --- Clock ---

    def tick(self):
        """Advance the clock one second. Returns True when a save is due."""
        if self.is_paused or self.is_game_over:
            return False
        self.timer += 1
        return self.timer % SAVE_EVERY_TICKS == 0

    # --- Snapshot ---

    def to_dict(self):
        selected = None
        if self.selected is not None:
            selected = {"r": self.selected[0], "c": self.selected[1]}
        return {
            "grid": [row[:] for row in self.board.grid],
            "solution": [row[:] for row in self.board.solution],
            "initial": [row[:] for row in self.board.initial],
            "notes": self.notes.to_list(),
            "selectedCell": selected,
            "score": self.score,
            "timer": self.timer,
            "mistakes": self.mistakes,
            "level": self.level,
            "isNoteMode": self.is_note_mode,
            "history": self.history.to_list(),
            "isPaused": self.is_paused,
            "isGameOver": self.is_game_over,
        }

    @classmethod
    def from_dict(cls, data):
        board = Board(data["initial"], data["solution"], data.get("grid"))
        selected = data.get("selectedCell")
        if selected is not None:
            selected = (selected["r"], selected["c"])
        return cls(
            board,
            level=data.get("level", DEFAULT_LEVEL),
            notes=NoteTracker.from_list(data.get("notes")),
            history=HistoryStack.from_list(data.get("history")),
            score=data.get("score", 0),
            timer=data.get("timer", 0),
            mistakes=data.get("mistakes", 0),
            is_note_mode=data.get("isNoteMode", False),
            is_paused=data.get("isPaused", False),
            is_game_over=data.get("isGameOver", False),
            selected=selected,
        )

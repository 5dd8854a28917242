"""Exceptions raised by the game engine.

Everything inherits from :class:`SudokuError` so the service layer can turn
any engine failure into an ``error`` message with a single handler.
"""


class SudokuError(Exception):
    """Base exception for all game engine errors."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class RejectedAction(SudokuError):
    """Raised when a player action is refused and nothing was changed.

    The message is meant to be shown to the player as is, e.g.
    "Select a cell first" or "Not enough points! Need 50".
    """


class InvalidMove(SudokuError, ValueError):
    """Raised for coordinates or digits outside the board."""


class UnknownDifficulty(SudokuError, ValueError):
    """Raised when a new game is requested for a level that does not exist."""

import os

# Cells removed from a full solution for each difficulty level.
DIFFICULTY_REMOVALS = {
    'easy': 30,
    'medium': 40,
    'hard': 50,
    'expert': 55,
}
DEFAULT_LEVEL = 'easy'

HINT_COST = 50
MISTAKE_PENALTY = 50
CORRECT_BONUS = 10
MAX_MISTAKES = 3
HISTORY_LIMIT = 20
HIGH_SCORE_LIMIT = 5
SAVE_EVERY_TICKS = 10

DEFAULTS = {
    'DATA_DIR': os.path.join(os.getcwd(), 'data'),
    'TICK_SECONDS': 1,
    'IDLE_SESSION_SECONDS': 600,
    'UNIQUE_PUZZLES': False,
    'LOG_LEVEL': 'INFO',
    'CORS_ORIGINS': '*',
}

import json
import logging
import os
import re

from config import HIGH_SCORE_LIMIT

log = logging.getLogger(__name__)

_SESSION_ID = re.compile(r'^[A-Za-z0-9_-]+$')


def _read_json(path, default):
    try:
        with open(path, 'r') as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except json.JSONDecodeError:
        log.warning("Ignoring unreadable file %s", path)
        return default


def _write_json(path, data):
    tmp_path = path + '.tmp'
    try:
        with open(tmp_path, 'w') as f:
            json.dump(data, f)
        os.replace(tmp_path, path)
        return True
    except OSError as e:
        log.warning("Could not write %s: %s", path, e)
        return False


class SnapshotStore:
    """One JSON file per saved session."""

    def __init__(self, directory):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, session_id):
        if not _SESSION_ID.match(session_id or ''):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return os.path.join(self.directory, f'{session_id}.json')

    def save(self, session_id, data):
        return _write_json(self._path(session_id), data)

    def load(self, session_id):
        return _read_json(self._path(session_id), None)

    def exists(self, session_id):
        return os.path.exists(self._path(session_id))

    def delete(self, session_id):
        try:
            os.remove(self._path(session_id))
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning("Could not delete snapshot %s: %s", session_id, e)


class HighScoreStore:
    def __init__(self, path, limit=HIGH_SCORE_LIMIT):
        self.path = path
        self.limit = limit
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)

    def all(self):
        scores = _read_json(self.path, [])
        return scores if isinstance(scores, list) else []

    def add(self, record):
        scores = self.all()
        scores.append(record)
        scores.sort(key=lambda s: s['score'], reverse=True)
        scores = scores[:self.limit]
        _write_json(self.path, scores)
        return scores

import logging
import os
import time
import uuid

from flask import Flask, request, jsonify
from flask_socketio import SocketIO, emit, join_room, leave_room
from flask_cors import CORS, cross_origin

from config import DEFAULTS, DIFFICULTY_REMOVALS, DEFAULT_LEVEL
from errors import SudokuError, UnknownDifficulty
from session import GameSession
from storage import HighScoreStore, SnapshotStore

log = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_mapping(DEFAULTS)
app.config.from_prefixed_env("SUDOKU")
CORS(app, origins=app.config['CORS_ORIGINS'])
socketio = SocketIO(app, cors_allowed_origins=app.config['CORS_ORIGINS'])

sessions = {}
tickers = {}
members = {}
touched = {}


def snapshot_store():
    return SnapshotStore(os.path.join(app.config['DATA_DIR'], 'sessions'))


def high_score_store():
    return HighScoreStore(os.path.join(app.config['DATA_DIR'], 'highscores.json'))


def public_state(session):
    state = session.to_dict()
    # The client never needs the answer key or the raw undo log.
    del state['solution']
    del state['history']
    state['historySize'] = len(session.history)
    state['won'] = session.won
    return state


def _save(session_id, session):
    if not session.is_game_over:
        snapshot_store().save(session_id, session.to_dict())


def _track(session_id, session):
    sessions[session_id] = session
    touched[session_id] = time.monotonic()


def drop_session(session_id):
    """Stop the clock of a session and take it out of memory, saving it first."""
    stop_ticker(session_id)
    touched.pop(session_id, None)
    session = sessions.pop(session_id, None)
    if session is not None:
        with session.lock:
            _save(session_id, session)
    return session


def evict_idle_sessions():
    # Sessions nobody joined within IDLE_SESSION_SECONDS only live on disk.
    limit = app.config['IDLE_SESSION_SECONDS']
    joined = set(members.values())
    now = time.monotonic()
    for session_id in list(sessions):
        if session_id not in joined and now - touched.get(session_id, now) > limit:
            log.debug("Evicting idle session %s", session_id)
            drop_session(session_id)


def start_session(level, session_id=None):
    if level not in DIFFICULTY_REMOVALS:
        raise UnknownDifficulty(f"Unknown difficulty: {level}")

    evict_idle_sessions()
    session_id = session_id or uuid.uuid4().hex[:12]
    stop_ticker(session_id)
    sessions.pop(session_id, None)
    snapshot_store().delete(session_id)

    session = GameSession.new(level, unique=app.config['UNIQUE_PUZZLES'])
    _track(session_id, session)
    if session_id in members.values():
        start_ticker(session_id)
    return session_id, session


# --- Clock ---

def run_ticker(session_id, token):
    interval = app.config['TICK_SECONDS']
    while True:
        socketio.sleep(interval)
        session = sessions.get(session_id)
        if session is None or tickers.get(session_id) != token:
            break
        with session.lock:
            if session.is_game_over:
                break
            save_due = session.tick()
            timer = session.timer
            if save_due:
                _save(session_id, session)
        socketio.emit('timer', {"timer": timer}, to=session_id)
    if tickers.get(session_id) == token:
        del tickers[session_id]


def start_ticker(session_id):
    if not app.config['TICK_SECONDS'] or session_id in tickers:
        return
    token = uuid.uuid4().hex
    tickers[session_id] = token
    socketio.start_background_task(run_ticker, session_id, token)


def stop_ticker(session_id):
    tickers.pop(session_id, None)


# --- HTTP ---

@app.route("/")
def index():
    return "Sudoku backend is running!"


@app.route("/new_game", methods=['POST'])
@cross_origin()
def new_game():
    try:
        data = request.get_json(silent=True) or {}
        level = data.get('difficulty', DEFAULT_LEVEL)
        session_id, session = start_session(level, data.get('session_id'))
        return jsonify({
            "session_id": session_id,
            "state": public_state(session),
            "message": "Game started"
        })
    except (SudokuError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        log.exception("Failed to start a new game")
        return jsonify({"error": str(e)}), 500


@app.route("/resume", methods=['POST'])
@cross_origin()
def resume_game():
    try:
        data = request.get_json(silent=True) or {}
        session_id = data.get('session_id')
        if not session_id:
            return jsonify({"error": "Session ID is required"}), 400

        session = sessions.get(session_id)
        if session is None:
            evict_idle_sessions()
            saved = snapshot_store().load(session_id)
            if saved is None:
                return jsonify({"error": "No saved game"}), 404
            session = GameSession.from_dict(saved)
            _track(session_id, session)
            log.info("Resumed session %s at %ds", session_id, session.timer)

        return jsonify({"session_id": session_id, "state": public_state(session)})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except (KeyError, TypeError) as e:
        log.warning("Corrupt snapshot for %s: %s", data.get('session_id'), e)
        return jsonify({"error": "Saved game is corrupt"}), 422
    except Exception as e:
        log.exception("Failed to resume a game")
        return jsonify({"error": str(e)}), 500


@app.route("/can_resume/<session_id>")
def can_resume(session_id):
    try:
        available = session_id in sessions or snapshot_store().exists(session_id)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"available": available})


@app.route("/high_scores")
def high_scores():
    return jsonify({"scores": high_score_store().all()})


# --- Socket events ---

def _get_session(data):
    session_id = (data or {}).get('session_id')
    session = sessions.get(session_id)
    if session is None:
        emit('error', {"message": "Game not found"}, room=request.sid)
    return session_id, session


def _emit_state(session, outcome=None):
    payload = {"game_state": public_state(session)}
    if outcome is not None:
        payload["last_move"] = outcome.to_dict()
    emit('game_state_update', payload, room=request.sid)


def _dispatch(data, action, persist=False):
    session_id, session = _get_session(data)
    if session is None:
        return

    try:
        with session.lock:
            outcome = action(session)
            if "win" in outcome.event_names():
                high_score_store().add(session.high_score_record())
            if session.is_game_over:
                stop_ticker(session_id)
                snapshot_store().delete(session_id)
            elif persist and outcome.changed and not session.is_note_mode:
                _save(session_id, session)
    except SudokuError as e:
        log.debug("Rejected action on %s: %s", session_id, e.message)
        emit('error', {"message": e.message}, room=request.sid)
        return

    for name, payload in outcome.events:
        emit(name, payload, room=request.sid)
    _emit_state(session, outcome)


@socketio.on('join')
def on_join(data):
    session_id, session = _get_session(data)
    if session is None:
        return
    previous = members.get(request.sid)
    if previous is not None and previous != session_id:
        _release(request.sid)
        leave_room(previous)
    join_room(session_id)
    members[request.sid] = session_id
    touched[session_id] = time.monotonic()
    if not session.is_game_over:
        start_ticker(session_id)
    _emit_state(session)


@socketio.on('select')
def on_select(data):
    session_id, session = _get_session(data)
    if session is None:
        return
    try:
        with session.lock:
            session.select(data.get("row"), data.get("col"))
    except SudokuError as e:
        emit('error', {"message": e.message}, room=request.sid)
        return
    _emit_state(session)


@socketio.on('move')
def on_move(data=None):
    data = data or {}

    def action(session):
        if "row" in data and "col" in data:
            row, col = data["row"], data["col"]
            # apply_move validates everything before touching the board
            outcome = session.apply_move(row, col, data.get("value"))
            session.select(row, col)
            return outcome
        return session.input_number(data.get("value"))
    _dispatch(data, action, persist=True)


@socketio.on('erase')
def on_erase(data):
    _dispatch(data, lambda session: session.erase(), persist=True)


@socketio.on('toggle_notes')
def on_toggle_notes(data):
    session_id, session = _get_session(data)
    if session is None:
        return
    with session.lock:
        session.toggle_note_mode()
    _emit_state(session)


@socketio.on('undo')
def on_undo(data):
    session_id, session = _get_session(data)
    if session is None:
        return
    if not len(session.history):
        emit('error', {"message": "Nothing to undo!"}, room=request.sid)
        return
    _dispatch(data, lambda session: session.undo())


@socketio.on('hint')
def on_hint(data):
    _dispatch(data, lambda session: session.use_hint())


@socketio.on('pause')
def on_pause(data):
    session_id, session = _get_session(data)
    if session is None:
        return
    with session.lock:
        session.pause()
    _emit_state(session)


@socketio.on('resume')
def on_resume(data):
    session_id, session = _get_session(data)
    if session is None:
        return
    with session.lock:
        session.resume()
    _emit_state(session)


def _release(sid):
    session_id = members.pop(sid, None)
    if session_id is not None and session_id not in members.values():
        drop_session(session_id)
    return session_id


@socketio.on('leave')
def on_leave(data):
    session_id = _release(request.sid)
    if session_id:
        leave_room(session_id)


@socketio.on('disconnect')
def on_disconnect(reason=None):
    _release(request.sid)

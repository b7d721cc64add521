from functools import wraps

from flask import current_app, request
from flask_socketio import emit

from promptjam import socketio
from promptjam.errors import GameError, SessionNotFound, Unauthorized


def _service():
    return current_app.extensions['promptjam']


def _payload(data):
    return data if isinstance(data, dict) else {}


def _strings(event, data, *keys):
    """Read string fields from a payload.

    Absent fields come back as None. Returns None when any field is present
    with another type, after logging; the caller then ignores the event.
    """
    data = _payload(data)
    values = []
    for key in keys:
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            current_app.logger.warning(
                f"[payload-skip] malformed {event} from sid={request.sid}: {key} is {type(value).__name__}"
            )
            return None
        values.append(value)
    return values


def _reports_errors(handler):
    """Turn game errors into a single advisory for the calling connection."""

    @wraps(handler)
    def wrapper(*args):
        try:
            return handler(*args)
        except Unauthorized:
            current_app.logger.debug(f"[unauthorized] sid={request.sid} event={handler.__name__}")
        except SessionNotFound as exc:
            emit('rejoinError', {'message': exc.text})
        except GameError as exc:
            current_app.logger.info(f"[error] sid={request.sid} {type(exc).__name__}: {exc}")
            emit('errorMsg', {'text': exc.text})

    return wrapper


def handle_connect(auth=None):
    current_app.logger.info(f"[connect] sid={request.sid}")
    _service().connect(request.sid)


def handle_disconnect(reason=None):
    current_app.logger.info(f"[disconnect] sid={request.sid}")
    _service().disconnect(request.sid)


@_reports_errors
def handle_create_game(data=None):
    fields = _strings('createGame', data, 'roomName', 'levelPackName')
    if fields is None:
        return
    room_name, level_pack_name = fields
    if room_name is None or level_pack_name is None:
        current_app.logger.warning(f"[create-skip] malformed createGame from sid={request.sid}: {data!r}")
        return
    _service().create_game(request.sid, room_name, level_pack_name)


@_reports_errors
def handle_gm_connect(data=None):
    fields = _strings('gmConnect', data, 'roomId')
    if fields is not None:
        _service().gm_reconnect(request.sid, fields[0])


@_reports_errors
def handle_join_game(data=None):
    fields = _strings('joinGame', data, 'roomId', 'playerName')
    if fields is not None:
        room_id, player_name = fields
        _service().join_game(request.sid, room_id, player_name)


@_reports_errors
def handle_rejoin_game(data=None):
    fields = _strings('rejoinGame', data, 'playerId', 'roomId')
    if fields is not None:
        player_id, room_id = fields
        _service().rejoin(request.sid, player_id, room_id)


@_reports_errors
def handle_start_game(data=None):
    _service().start_game(request.sid)


@_reports_errors
def handle_start_first_round(data=None):
    _service().start_first_round(request.sid)


@_reports_errors
def handle_submit_prompt(data=None):
    _service().submit_prompt(request.sid, _payload(data).get('text'))


@_reports_errors
def handle_close_submissions(data=None):
    _service().close_submissions(request.sid)


@_reports_errors
def handle_show_leaderboard(data=None):
    _service().show_leaderboard(request.sid)


@_reports_errors
def handle_next_level(data=None):
    _service().next_level(request.sid)


@_reports_errors
def handle_show_final_results(data=None):
    _service().show_final_results(request.sid)


EVENT_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'createGame': handle_create_game,
    'gmConnect': handle_gm_connect,
    'joinGame': handle_join_game,
    'rejoinGame': handle_rejoin_game,
    'startGame': handle_start_game,
    'startFirstRound': handle_start_first_round,
    'submitPrompt': handle_submit_prompt,
    'closeSubmissions': handle_close_submissions,
    'showLeaderboard': handle_show_leaderboard,
    'nextLevel': handle_next_level,
    'showFinalResults': handle_show_final_results,
}


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the game namespace."""
    for event, handler in EVENT_HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)

from flask import Blueprint, current_app, jsonify

games = Blueprint('games', __name__)


def _service():
    return current_app.extensions['promptjam']


@games.route('', methods=['GET'])
def list_games():
    """
    Returns joinable (lobby) and active rooms, as shown in the lobby view.
    """
    return jsonify(_service().registry.list_rooms())


@games.route('/level-packs', methods=['GET'])
def list_level_packs():
    return jsonify(_service().registry.catalog.to_dict())


@games.route('/<string:room_id>', methods=['GET'])
def get_game_state(room_id):
    """
    Returns the public state of one room.
    """
    room = _service().registry.find_room(room_id)
    if room is None:
        return jsonify({'error': 'Game not found'}), 404
    with room.lock:
        return jsonify(room.to_dict())

from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    service = current_app.extensions['promptjam']
    return jsonify({
        'message': 'Welcome to the Prompt Jam game server!',
        'rooms': len(service.registry),
    })

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

from promptjam.levels import load_catalog

cors = CORS()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config, judge=None, scheduler=None):
    """Build the Flask app and its game service.

    ``judge`` and ``scheduler`` default to the Gemini-backed judge and
    Socket.IO background tasks; tests pass in their own. A missing or
    malformed level catalog raises LevelCatalogError, which is fatal.
    """
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    catalog = load_catalog(flask_app.config['LEVELS_PATH'])
    flask_app.logger.info(f"[levels] loaded {len(catalog)} level packs from {flask_app.config['LEVELS_PATH']}")

    origins = flask_app.config.get('CORS_ORIGINS') or []
    cors.init_app(flask_app, supports_credentials=True, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from promptjam.games import GameService
    from promptjam.gateway import SocketIOGateway
    from promptjam.judging import build_judge
    from promptjam.registry import RoomRegistry
    from promptjam.services.games.scheduler import SocketIOScheduler

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    flask_app.extensions['promptjam'] = GameService(
        registry=RoomRegistry(catalog),
        gateway=SocketIOGateway(socketio, namespace=namespace),
        judge=judge or build_judge(flask_app.config, logger=flask_app.logger),
        scheduler=scheduler or SocketIOScheduler(socketio, logger=flask_app.logger),
        grace_period_sec=float(flask_app.config.get('GM_GRACE_PERIOD_SEC', 5)),
        allow_player_rejoin=bool(flask_app.config.get('ALLOW_PLAYER_REJOIN', True)),
        logger=flask_app.logger,
    )

    from promptjam.main import main
    flask_app.register_blueprint(main)

    from promptjam.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from promptjam.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=namespace)

    @click.command('check-levels')
    def check_levels_command():
        """Validates the level catalog and lists its packs."""
        for pack in catalog.to_dict()['levelPacks']:
            click.echo(f"{pack['name']}: {pack['levels']} levels")

    flask_app.cli.add_command(check_levels_command)

    return flask_app

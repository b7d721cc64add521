import json
import logging
import os
import sys
import pytest

# Ensure the backend root (containing the `promptjam` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from promptjam import create_app, socketio
from promptjam.games import GameService
from promptjam.levels import parse_catalog
from promptjam.registry import RoomRegistry

NAMESPACE = '/ws'

LEVEL_PACKS = {
    'Default': [
        {'level': 1, 'problem': 'Get the AI to write a limerick about a cat.'},
        {'level': 2, 'problem': 'Get the AI to summarise a film in five words.'},
    ],
    'Single': [
        {'level': 1, 'problem': 'Get the AI to name a new colour.'},
    ],
    'Empty': [],
}


class ScriptedJudge:
    """Ranks by a scripted list of player names, or by submission order."""

    def __init__(self):
        self.order = None
        self.calls = []
        self.on_rank = None

    def rank(self, submissions, problem):
        self.calls.append(('rank', [dict(s) for s in submissions], problem))
        if self.on_rank:
            self.on_rank()
        ordered = list(submissions)
        if self.order:
            ordered.sort(key=lambda s: self.order.index(s['name']))
        return [{'id': s['id'], 'name': s['name'], 'reason': f"{s['name']} was ranked"} for s in ordered]

    def explain(self, winning_text, problem):
        self.calls.append(('explain', winning_text, problem))
        return f'Solved with: {winning_text}'


class ManualTask:
    def __init__(self, due, callback, args):
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Virtual clock; callbacks fire only when a test calls advance()."""

    def __init__(self):
        self.now = 0.0
        self.tasks = []

    def call_later(self, delay, callback, *args):
        task = ManualTask(self.now + delay, callback, args)
        self.tasks.append(task)
        return task

    def advance(self, seconds):
        self.now += seconds
        for task in list(self.tasks):
            if task.due <= self.now and not task.cancelled and not task.fired:
                task.fired = True
                task.callback(*task.args)
        self.tasks = [t for t in self.tasks if not (t.fired or t.cancelled)]

    @property
    def pending(self):
        return [t for t in self.tasks if not (t.fired or t.cancelled)]


class RecordingGateway:
    def __init__(self):
        self.sent = []
        self.members = {}

    def send(self, event, payload, to):
        self.sent.append((event, payload, to))

    def enter(self, sid, room):
        self.members.setdefault(room, set()).add(sid)

    def leave(self, sid, room):
        self.members.get(room, set()).discard(sid)

    def close(self, room):
        self.members.pop(room, None)

    def events(self, name, to=None):
        return [p for e, p, t in self.sent if e == name and (to is None or t == to)]

    def clear(self):
        self.sent = []


@pytest.fixture()
def levels_file(tmp_path):
    path = tmp_path / 'levels.json'
    path.write_text(json.dumps(LEVEL_PACKS))
    return path


@pytest.fixture()
def judge():
    return ScriptedJudge()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def gateway():
    return RecordingGateway()


@pytest.fixture()
def service(gateway, judge, scheduler):
    return GameService(
        registry=RoomRegistry(parse_catalog(LEVEL_PACKS)),
        gateway=gateway,
        judge=judge,
        scheduler=scheduler,
        grace_period_sec=5.0,
        logger=logging.getLogger('promptjam.tests'),
    )


@pytest.fixture()
def flask_app(levels_file, judge, scheduler):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = 'test-secret'
        LEVELS_PATH = str(levels_file)
        SOCKETIO_NAMESPACE = NAMESPACE
        GEMINI_API_KEY = None

    application = create_app(TestConfig, judge=judge, scheduler=scheduler)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def socket_clients(application):
    """Yield a factory for Socket.IO test clients; disconnects them afterwards."""
    clients = []

    def _connect():
        test_client = socketio.test_client(
            application,
            flask_test_client=application.test_client(),
            namespace=NAMESPACE,
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients on the game namespace."""
    yield from socket_clients(flask_app)


@pytest.fixture()
def game_service(flask_app):
    return flask_app.extensions['promptjam']


def received(test_client, name=None):
    """Drain a test client's queue, optionally keeping one event name."""
    packets = test_client.get_received(NAMESPACE)
    if name is None:
        return packets
    return [p['args'][0] if p['args'] else None for p in packets if p['name'] == name]

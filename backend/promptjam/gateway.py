"""Connection gateway: the game's only view of the real-time transport."""

LOBBY_ROOM = 'main-lobby'


class SocketIOGateway:
    """Send events and manage room membership on one Socket.IO namespace.

    ``to`` is either a connection sid, a room id, or ``LOBBY_ROOM``. All
    calls go through ``socketio.server`` so they work outside a request
    context (e.g. from the grace-period timer).
    """

    def __init__(self, socketio, namespace: str = '/ws'):
        self.socketio = socketio
        self.namespace = namespace

    def send(self, event: str, payload, to: str) -> None:
        self.socketio.emit(event, payload, to=to, namespace=self.namespace)

    def enter(self, sid: str, room: str) -> None:
        self.socketio.server.enter_room(sid, room, namespace=self.namespace)

    def leave(self, sid: str, room: str) -> None:
        self.socketio.server.leave_room(sid, room, namespace=self.namespace)

    def close(self, room: str) -> None:
        self.socketio.server.close_room(room, namespace=self.namespace)

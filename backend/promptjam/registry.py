import threading
import uuid
from typing import Callable, Dict, List, Optional

from promptjam.errors import InvalidLevelPack, InvalidRoomName
from promptjam.levels import LevelCatalog
from promptjam.models import Phase, Room


def new_id() -> str:
    return uuid.uuid4().hex


class RoomRegistry:
    """Owns every live Room, keyed by an opaque room id."""

    def __init__(self, catalog: LevelCatalog, id_factory: Callable[[], str] = new_id):
        self.catalog = catalog
        self._new_id = id_factory
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def create_room(self, name: str, level_pack_id: str, gm_connection: str) -> str:
        name = name.strip() if isinstance(name, str) else ''
        if not name:
            raise InvalidRoomName()
        if not isinstance(level_pack_id, str) or level_pack_id not in self.catalog:
            raise InvalidLevelPack()
        levels = self.catalog.get(level_pack_id)
        with self._lock:
            room_id = self._new_id()
            while room_id in self._rooms:
                room_id = self._new_id()
            self._rooms[room_id] = Room(
                id=room_id,
                name=name,
                level_pack_id=level_pack_id,
                levels=levels,
                gm_connection=gm_connection,
            )
        return room_id

    def new_player_id(self) -> str:
        return self._new_id()

    def find_room(self, room_id) -> Optional[Room]:
        if not room_id or not isinstance(room_id, str):
            return None
        return self._rooms.get(room_id)

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())

    def list_rooms(self):
        joinable, active = [], []
        for room in self.rooms():
            (joinable if room.phase == Phase.LOBBY else active).append(room.summary())
        return {'joinable': joinable, 'active': active}

    def delete_room(self, room_id) -> Optional[Room]:
        with self._lock:
            room = self._rooms.pop(room_id, None)
        if room is not None and room.deletion_task is not None:
            room.deletion_task.cancel()
            room.deletion_task = None
        return room

    def __contains__(self, room_id) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

import json

import pytest

from promptjam.errors import InvalidLevelPack, InvalidRoomName, LevelCatalogError
from promptjam.levels import load_catalog, parse_catalog
from promptjam.models import Phase, Player
from promptjam.registry import RoomRegistry

from conftest import LEVEL_PACKS


@pytest.fixture()
def registry():
    return RoomRegistry(parse_catalog(LEVEL_PACKS))


def test_create_and_find_room(registry):
    room_id = registry.create_room('Trivia Night', 'Default', gm_connection='gm')
    room = registry.find_room(room_id)
    assert room.name == 'Trivia Night'
    assert room.phase == Phase.LOBBY
    assert room.current_level == 0
    assert room.gm_connection == 'gm'
    assert [p.level for p in room.levels] == [1, 2]
    assert registry.find_room('missing') is None
    assert registry.find_room(None) is None
    assert registry.find_room(['missing']) is None


def test_room_ids_are_unique(registry):
    ids = {registry.create_room(f'Room {i}', 'Default', 'gm') for i in range(50)}
    assert len(ids) == 50


def test_colliding_ids_are_redrawn():
    ids = iter(['same', 'same', 'other'])
    registry = RoomRegistry(parse_catalog(LEVEL_PACKS), id_factory=lambda: next(ids))
    assert registry.create_room('A', 'Default', 'gm') == 'same'
    assert registry.create_room('B', 'Default', 'gm') == 'other'


def test_create_room_validation(registry):
    with pytest.raises(InvalidLevelPack):
        registry.create_room('Trivia Night', 'Unknown', 'gm')
    with pytest.raises(InvalidRoomName):
        registry.create_room('  ', 'Default', 'gm')


def test_list_rooms_partitions_by_phase(registry):
    lobby_id = registry.create_room('Lobby room', 'Default', 'gm1')
    busy_id = registry.create_room('Busy room', 'Single', 'gm2')
    busy = registry.find_room(busy_id)
    busy.phase = Phase.PROMPTING
    busy.players['p1'] = Player(id='p1', name='Ann')
    busy.players['p2'] = Player(id='p2', name='Bo', active=False)

    listing = registry.list_rooms()

    assert listing['joinable'] == [
        {'id': lobby_id, 'name': 'Lobby room', 'levelPackId': 'Default', 'activePlayerCount': 0}
    ]
    assert listing['active'] == [
        {'id': busy_id, 'name': 'Busy room', 'levelPackId': 'Single', 'activePlayerCount': 1}
    ]


def test_delete_room_cancels_timer_and_is_idempotent(registry):
    class Task:
        cancelled = False

        def cancel(self):
            self.cancelled = True

    room_id = registry.create_room('Room', 'Default', 'gm')
    task = Task()
    registry.find_room(room_id).deletion_task = task
    assert registry.delete_room(room_id) is not None
    assert task.cancelled
    assert registry.delete_room(room_id) is None
    assert room_id not in registry


def test_catalog_defaults_level_numbers():
    catalog = parse_catalog({'Pack': [{'problem': 'one'}, {'problem': 'two'}]})
    assert [p.level for p in catalog.get('Pack')] == [1, 2]
    assert catalog.to_dict() == {'levelPacks': [{'name': 'Pack', 'levels': 2}]}


@pytest.mark.parametrize('data', [
    [],
    {},
    {'Pack': 'nope'},
    {'Pack': [{'level': 1}]},
    {'Pack': [{'level': 'one', 'problem': 'x'}]},
])
def test_malformed_catalog(data):
    with pytest.raises(LevelCatalogError):
        parse_catalog(data)


def test_load_catalog_missing_file(tmp_path):
    with pytest.raises(LevelCatalogError):
        load_catalog(str(tmp_path / 'nope.json'))


def test_load_catalog_bad_json(tmp_path):
    path = tmp_path / 'levels.json'
    path.write_text('{not json')
    with pytest.raises(LevelCatalogError):
        load_catalog(str(path))


def test_load_catalog(levels_file):
    catalog = load_catalog(str(levels_file))
    assert catalog.names() == ['Default', 'Single', 'Empty']
    assert 'Single' in catalog
    assert catalog.get('Empty') == ()


def test_shipped_catalog_loads():
    from config import Config
    catalog = load_catalog(Config.LEVELS_PATH)
    assert 'Default' in catalog
    assert len(catalog.get('Default')) >= 1
    json.dumps(catalog.to_dict())

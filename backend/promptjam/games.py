"""Room lifecycle and the per-room phase machine.

``GameService`` is transport-agnostic: it is handed a connection id (the
Socket.IO sid) for every call and talks back through a gateway. Every room
mutation happens under that room's lock; the lock is released while the
judge runs, so anything after the judge re-fetches the room by id.
"""

import logging
import threading
from typing import Dict, Optional, Tuple

from promptjam.errors import (
    EmptySubmission,
    GameAlreadyStarted,
    InvalidPlayerName,
    NoLevelsConfigured,
    RoomNotFound,
    SessionNotFound,
    Unauthorized,
)
from promptjam.gateway import LOBBY_ROOM
from promptjam.models import Phase, Player, Room
from promptjam.registry import RoomRegistry
from promptjam.services.games.scoring import leaderboard, score_round

GM_LEFT_MESSAGE = 'The Game Master has disconnected. The game has ended.'


class GameService:
    def __init__(
        self,
        registry: RoomRegistry,
        gateway,
        judge,
        scheduler,
        grace_period_sec: float = 5.0,
        allow_player_rejoin: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self.registry = registry
        self.gateway = gateway
        self.judge = judge
        self.scheduler = scheduler
        self.grace_period_sec = grace_period_sec
        self.allow_player_rejoin = allow_player_rejoin
        self.logger = logger or logging.getLogger(__name__)
        # connection sid -> room id, for every connection bound to a room
        self._connection_rooms: Dict[str, str] = {}
        self._lock = threading.Lock()

    # ---- Connection bookkeeping ----

    def connect(self, sid: str) -> None:
        self.gateway.enter(sid, LOBBY_ROOM)
        self.gateway.send('levelPacksAvailable', {'levelPacks': self.registry.catalog.names()}, to=sid)
        self.gateway.send('updateGameList', self.registry.list_rooms(), to=sid)

    def room_for(self, sid: str) -> Optional[Room]:
        return self.registry.find_room(self._connection_rooms.get(sid))

    def _bind(self, sid: str, room_id: str) -> None:
        with self._lock:
            previous = self._connection_rooms.get(sid)
            self._connection_rooms[sid] = room_id
        if previous and previous != room_id:
            self.gateway.leave(sid, previous)
        self.gateway.leave(sid, LOBBY_ROOM)
        self.gateway.enter(sid, room_id)

    def _forget(self, sid: Optional[str]) -> Optional[str]:
        if not sid:
            return None
        with self._lock:
            return self._connection_rooms.pop(sid, None)

    def _require_gm(self, sid: str) -> Room:
        room = self.room_for(sid)
        if room is None or room.gm_connection != sid:
            raise Unauthorized()
        return room

    def _expect(self, room: Room, *phases: Phase) -> bool:
        if room.phase in phases:
            return True
        self.logger.info(
            f"[phase-skip] room={room.id} phase={room.phase.value} expected={'|'.join(p.value for p in phases)}"
        )
        return False

    # ---- Outbound helpers ----

    def broadcast_game_lists(self) -> None:
        self.gateway.send('updateGameList', self.registry.list_rooms(), to=LOBBY_ROOM)

    def _send_player_list(self, room: Room) -> None:
        self.gateway.send('updatePlayerList', {'players': [p.to_dict() for p in room.players.values()]}, to=room.id)

    def _send_submission_status(self, room: Room) -> None:
        if not room.gm_connection:
            return
        self.gateway.send('updateSubmissionStatus', {
            'players': [p.to_dict() for p in room.players.values()],
            'prompts': dict(room.submissions),
        }, to=room.gm_connection)

    def _leaderboard_payload(self, room: Room):
        return {
            'overallLeaderboard': leaderboard(room.standings()),
            'currentLevel': room.current_level,
            'totalLevels': room.total_levels,
        }

    # ---- Lobby, join and reconnect ----

    def create_game(self, sid: str, room_name: str, level_pack_id: str) -> str:
        room_id = self.registry.create_room(room_name, level_pack_id, gm_connection=sid)
        self._bind(sid, room_id)
        self.logger.info(f"[room-create] room={room_id} name={room_name!r} pack={level_pack_id!r} gm={sid}")
        self.gateway.send('gameCreated', {'roomId': room_id}, to=sid)
        self.broadcast_game_lists()
        return room_id

    def gm_reconnect(self, sid: str, room_id: str) -> Room:
        room = self.registry.find_room(room_id)
        if room is None:
            raise RoomNotFound('The game you were hosting could not be found.')
        with room.lock:
            if room.deletion_task is not None:
                room.deletion_task.cancel()
                room.deletion_task = None
                self.logger.info(f"[room-keep] room={room.id} deletion timer cancelled")
            room.gm_connection = sid
            self._bind(sid, room.id)
            self.logger.info(f"[gm-connect] room={room.id} gm={sid}")
            self.gateway.send('gameCreated', {'roomId': room.id}, to=sid)
            self._send_player_list(room)
            if room.phase == Phase.PROMPTING:
                self._send_submission_status(room)
        return room

    def join_game(self, sid: str, room_id: str, player_name: str) -> str:
        room = self.registry.find_room(room_id)
        if room is None:
            raise RoomNotFound()
        with room.lock:
            if room.phase != Phase.LOBBY:
                raise GameAlreadyStarted()
            name = player_name.strip() if isinstance(player_name, str) else ''
            if not name:
                raise InvalidPlayerName()
            player_id = self.registry.new_player_id()
            room.players[player_id] = Player(id=player_id, name=name, connection=sid)
            room.connection_to_player[sid] = player_id
            self._bind(sid, room.id)
            self.logger.info(f"[player-join] room={room.id} player={player_id} name={name!r}")
            self.gateway.send('joinSuccess', {'message': f'Welcome, {name}!', 'playerId': player_id}, to=sid)
            self._send_player_list(room)
        self.broadcast_game_lists()
        return player_id

    def _find_player(self, player_id, room_id=None) -> Tuple[Optional[Room], Optional[Player]]:
        if not isinstance(player_id, str):
            return None, None
        rooms = [self.registry.find_room(room_id)] if room_id else self.registry.rooms()
        for room in rooms:
            if room is not None and player_id in room.players:
                return room, room.players[player_id]
        return None, None

    def rejoin(self, sid: str, player_id: str, room_id: Optional[str] = None) -> Player:
        if not self.allow_player_rejoin:
            raise SessionNotFound('Rejoining a game in progress is not enabled on this server.')
        room, player = self._find_player(player_id, room_id)
        if player is None:
            raise SessionNotFound()
        with room.lock:
            stale = player.connection
            if stale and stale != sid:
                room.connection_to_player.pop(stale, None)
                self._forget(stale)
            player.connection = sid
            player.active = True
            room.connection_to_player[sid] = player.id
            self._bind(sid, room.id)
            self.logger.info(f"[player-rejoin] room={room.id} player={player.id} phase={room.phase.value}")
            self._replay_state(room, player, sid)
            self._send_player_list(room)
            self._send_submission_status(room)
        self.broadcast_game_lists()
        return player

    def _replay_state(self, room: Room, player: Player, sid: str) -> None:
        """Bring a reconnecting client up to date with the room's phase."""
        welcome = {'message': f'Welcome back, {player.name}!', 'playerId': player.id}
        phase = room.phase
        if phase == Phase.LOBBY:
            self.gateway.send('joinSuccess', welcome, to=sid)
        elif phase == Phase.INSTRUCTIONS:
            self.gateway.send('showInstructions', {}, to=sid)
        elif phase == Phase.PROMPTING:
            self.gateway.send('levelStart', room.current_problem.to_dict(), to=sid)
            if player.id in room.submissions:
                self.gateway.send('submissionAccepted', {}, to=sid)
        elif phase == Phase.RESULTS:
            if room.last_result is not None:
                self.gateway.send('showRoundResults', {'roundResults': room.last_result.to_dict()}, to=sid)
            else:
                # nothing judged yet (or no submissions); fall back to the lobby view
                self.gateway.send('joinSuccess', welcome, to=sid)
        elif phase == Phase.LEADERBOARD:
            self.gateway.send('showLeaderboard', self._leaderboard_payload(room), to=sid)
        elif phase == Phase.GAMEOVER:
            self.gateway.send('gameOver', {'finalLeaderboard': leaderboard(room.standings())}, to=sid)

    def disconnect(self, sid: str) -> None:
        room = self.registry.find_room(self._forget(sid))
        if room is None:
            return
        with room.lock:
            if sid == room.gm_connection:
                self.logger.info(
                    f"[gm-disconnect] room={room.id} deleting in {self.grace_period_sec}s unless the GM returns"
                )
                self._schedule_deletion(room, sid)
                return
            player = room.player_for(sid)
            if player is None:
                return
            player.active = False
            room.connection_to_player.pop(sid, None)
            self.logger.info(f"[player-disconnect] room={room.id} player={player.id}")
            self._send_player_list(room)
            self._send_submission_status(room)
        self.broadcast_game_lists()

    # ---- Room deletion ----

    def _schedule_deletion(self, room: Room, gm_sid: str) -> None:
        if room.deletion_task is not None:
            room.deletion_task.cancel()
        room.deletion_task = self.scheduler.call_later(self.grace_period_sec, self._expire_room, room.id, gm_sid)

    def _expire_room(self, room_id: str, gm_sid: str) -> None:
        room = self.registry.find_room(room_id)
        if room is None:
            return
        with room.lock:
            task = room.deletion_task
            if task is None or task.cancelled or room.gm_connection != gm_sid:
                self.logger.info(f"[timer-abort] room={room_id} GM came back")
                return
            room.deletion_task = None
            self.logger.info(f"[room-expire] room={room_id} grace period over, deleting")
            self.gateway.send('gameReset', {'message': GM_LEFT_MESSAGE}, to=room_id)
            self.delete_room(room_id)
        self.broadcast_game_lists()

    def delete_room(self, room_id: str) -> None:
        room = self.registry.delete_room(room_id)
        if room is None:
            return
        with self._lock:
            for sid in [s for s, rid in self._connection_rooms.items() if rid == room_id]:
                del self._connection_rooms[sid]
        self.gateway.close(room_id)
        self.logger.info(f"[room-delete] room={room_id}")

    # ---- Phase machine (GM only) ----

    def start_game(self, sid: str) -> None:
        room = self._require_gm(sid)
        with room.lock:
            if not self._expect(room, Phase.LOBBY):
                return
            room.game_started = True
            room.phase = Phase.INSTRUCTIONS
            self.logger.info(f"[game-start] room={room.id} players={len(room.players)}")
            self.gateway.send('showInstructions', {}, to=room.id)
        self.broadcast_game_lists()

    def start_first_round(self, sid: str) -> None:
        room = self._require_gm(sid)
        with room.lock:
            if not self._expect(room, Phase.INSTRUCTIONS):
                return
            if not room.levels:
                raise NoLevelsConfigured()
            room.current_level = 1
            self._enter_prompting(room)

    def _enter_prompting(self, room: Room) -> None:
        room.submissions = {}
        room.last_result = None
        room.phase = Phase.PROMPTING
        self.logger.info(f"[level-start] room={room.id} level={room.current_level}/{room.total_levels}")
        self.gateway.send('levelStart', room.current_problem.to_dict(), to=room.id)
        self._send_submission_status(room)

    def submit_prompt(self, sid: str, text) -> None:
        room = self.room_for(sid)
        if room is None:
            return
        with room.lock:
            player = room.player_for(sid)
            if player is None or not self._expect(room, Phase.PROMPTING):
                return
            text = text.strip() if isinstance(text, str) else ''
            if not text:
                raise EmptySubmission()
            if player.id in room.submissions:
                self.logger.info(f"[submit-skip] room={room.id} player={player.id} already submitted")
                return
            room.submissions[player.id] = text
            self.logger.info(
                f"[submit] room={room.id} player={player.id} count={len(room.submissions)}"
            )
            self.gateway.send('submissionAccepted', {}, to=sid)
            self._send_submission_status(room)
            if room.gm_connection and len(room.submissions) >= len(room.active_players()):
                self.gateway.send('allPromptsReceived', {}, to=room.gm_connection)

    def close_submissions(self, sid: str) -> None:
        room = self._require_gm(sid)
        with room.lock:
            if not self._expect(room, Phase.PROMPTING):
                return
            room.phase = Phase.RESULTS
            entries = [
                {'id': pid, 'name': room.players[pid].name if pid in room.players else '', 'text': text}
                for pid, text in room.submissions.items()
            ]
            if not entries:
                self.logger.info(f"[close] room={room.id} no submissions, nothing to judge")
                return
            room.judging = True
            room_id, level, problem = room.id, room.current_level, room.current_problem.problem
            self.logger.info(f"[close] room={room_id} level={level} judging {len(entries)} prompts")

        ranking, solution = [], 'No winner.'
        try:
            ranking = self.judge.rank(entries, problem)
            if ranking:
                winner_text = next(e['text'] for e in entries if e['id'] == ranking[0]['id'])
                solution = self.judge.explain(winner_text, problem)
        finally:
            room = self.registry.find_room(room_id)
            if room is not None:
                with room.lock:
                    room.judging = False

        if room is None:
            self.logger.info(f"[close-drop] room={room_id} deleted while judging")
            return
        with room.lock:
            if room.phase != Phase.RESULTS or room.current_level != level:
                self.logger.info(f"[close-drop] room={room_id} moved on while judging")
                return
            if not ranking:
                return
            result = score_round(room, ranking, {e['id']: e for e in entries}, problem, solution)
            room.last_result = result
            self.logger.info(f"[results] room={room_id} level={level} winner={result.winner_name!r}")
            self.gateway.send('showRoundResults', {'roundResults': result.to_dict()}, to=room_id)

    def show_leaderboard(self, sid: str) -> None:
        room = self._require_gm(sid)
        with room.lock:
            if not self._expect(room, Phase.RESULTS):
                return
            if room.judging:
                self.logger.info(f"[phase-skip] room={room.id} leaderboard requested while judging")
                return
            room.phase = Phase.LEADERBOARD
            self.gateway.send('showLeaderboard', self._leaderboard_payload(room), to=room.id)

    def next_level(self, sid: str) -> None:
        room = self._require_gm(sid)
        with room.lock:
            if not self._expect(room, Phase.LEADERBOARD):
                return
            if room.current_level >= room.total_levels:
                self._finish(room)
                return
            room.current_level += 1
            self._enter_prompting(room)

    def show_final_results(self, sid: str) -> None:
        room = self._require_gm(sid)
        with room.lock:
            if not self._expect(room, Phase.LEADERBOARD):
                return
            self._finish(room)

    def _finish(self, room: Room) -> None:
        room.phase = Phase.GAMEOVER
        self.logger.info(f"[finish] room={room.id} finished at level={room.current_level}")
        self.gateway.send('gameOver', {'finalLeaderboard': leaderboard(room.standings())}, to=room.id)

from dataclasses import dataclass, field
from enum import Enum
import threading
from typing import Any, Dict, List, Optional


class Phase(str, Enum):
    LOBBY = 'LOBBY'
    INSTRUCTIONS = 'INSTRUCTIONS'
    PROMPTING = 'PROMPTING'
    RESULTS = 'RESULTS'
    LEADERBOARD = 'LEADERBOARD'
    GAMEOVER = 'GAMEOVER'


@dataclass(frozen=True)
class Problem:
    level: int
    problem: str

    def to_dict(self):
        return {
            'level': self.level,
            'problem': self.problem,
        }


@dataclass
class Player:
    id: str
    name: str
    connection: Optional[str] = None
    score: int = 0
    active: bool = True

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'isActive': self.active,
        }


@dataclass(frozen=True)
class RankingEntry:
    rank: int
    name: str
    points: int
    prompt: str
    reason: str

    def to_dict(self):
        return {
            'rank': self.rank,
            'name': self.name,
            'points': self.points,
            'prompt': self.prompt,
            'reason': self.reason,
        }


@dataclass(frozen=True)
class RoundResult:
    problem: str
    winner_name: str
    ai_solution: str
    rankings: tuple = ()

    def to_dict(self):
        return {
            'problem': self.problem,
            'winnerName': self.winner_name,
            'aiSolution': self.ai_solution,
            'rankings': [r.to_dict() for r in self.rankings],
        }


@dataclass(eq=False)
class Room:
    id: str
    name: str
    level_pack_id: str
    levels: tuple
    gm_connection: Optional[str] = None
    phase: Phase = Phase.LOBBY
    game_started: bool = False
    current_level: int = 0
    players: Dict[str, Player] = field(default_factory=dict)
    connection_to_player: Dict[str, str] = field(default_factory=dict)
    submissions: Dict[str, str] = field(default_factory=dict)
    last_result: Optional[RoundResult] = None
    deletion_task: Any = None
    judging: bool = False
    lock: Any = field(default_factory=threading.RLock, repr=False)

    @property
    def total_levels(self) -> int:
        return len(self.levels)

    @property
    def current_problem(self) -> Optional[Problem]:
        if 1 <= self.current_level <= len(self.levels):
            return self.levels[self.current_level - 1]
        return None

    def active_players(self) -> List[Player]:
        return [p for p in self.players.values() if p.active]

    def player_for(self, connection: str) -> Optional[Player]:
        player_id = self.connection_to_player.get(connection)
        return self.players.get(player_id) if player_id else None

    def standings(self) -> List[Player]:
        # sorted() is stable, so ties keep join order
        return sorted(self.players.values(), key=lambda p: p.score, reverse=True)

    def summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'levelPackId': self.level_pack_id,
            'activePlayerCount': len(self.active_players()),
        }

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'levelPackId': self.level_pack_id,
            'phase': self.phase.value,
            'currentLevel': self.current_level,
            'totalLevels': self.total_levels,
            'players': [p.to_dict() for p in self.players.values()],
            'submissionCount': len(self.submissions),
            'lastResult': self.last_result.to_dict() if self.last_result else None,
        }

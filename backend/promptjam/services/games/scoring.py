from typing import Dict, List, Mapping, Sequence

from promptjam.models import Player, RankingEntry, Room, RoundResult


def points_for_rank(rank: int, active_count: int) -> int:
    """Rank 1 earns one point per active player, each later rank one fewer."""
    return max(0, active_count - (rank - 1))


def score_round(
    room: Room,
    ranking: Sequence[Mapping],
    submissions: Mapping[str, Dict[str, str]],
    problem: str,
    ai_solution: str,
) -> RoundResult:
    """Apply points for a judged round and build its RoundResult.

    ``ranking`` is the judge's best-to-worst list of ``{id, name, reason}``;
    ``submissions`` maps player id to the ``{id, name, text}`` snapshot taken
    when submissions closed. Scores are added to whichever Player currently
    holds each id in ``room.players``.
    """
    active_count = len(room.active_players())
    entries: List[RankingEntry] = []
    for idx, ranked in enumerate(ranking):
        rank = idx + 1
        points = points_for_rank(rank, active_count)
        player_id = ranked['id']
        player = room.players.get(player_id)
        if player is not None:
            player.score += points
        snapshot = submissions.get(player_id, {})
        entries.append(RankingEntry(
            rank=rank,
            name=snapshot.get('name') or ranked.get('name', ''),
            points=points,
            prompt=snapshot.get('text', 'N/A'),
            reason=ranked.get('reason', ''),
        ))
    return RoundResult(
        problem=problem,
        winner_name=entries[0].name if entries else '',
        ai_solution=ai_solution,
        rankings=tuple(entries),
    )


def leaderboard(players: Sequence[Player]) -> List[dict]:
    return [p.to_dict() for p in players]

"""Ranked views over participants.

Ranking is a stable sort on ``total_points`` descending: tied participants
keep the order they were fetched in (participant id within a game, game
creation order across games).
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from konsept.models import Game, Participant

GAME_MARKERS = ('trophy',)
PODIUM_MARKERS = ('trophy', 'medal', 'award')


@dataclass
class LeaderboardEntry:
    rank: int
    participant_id: int
    name: str
    total_points: int
    marker: Optional[str] = None
    game_id: Optional[int] = None
    game_name: Optional[str] = None

    def to_dict(self):
        return {
            'rank': self.rank,
            'participant_id': self.participant_id,
            'name': self.name,
            'total_points': self.total_points,
            'marker': self.marker,
            'game_id': self.game_id,
            'game_name': self.game_name,
        }


def marker_for(rank: int, markers=GAME_MARKERS) -> Optional[str]:
    return markers[rank - 1] if 0 < rank <= len(markers) else None


def _rank(participants: Iterable, markers, game_names=None) -> List[LeaderboardEntry]:
    ordered = sorted(participants, key=lambda p: p.total_points or 0, reverse=True)
    entries = []
    for idx, p in enumerate(ordered, start=1):
        entries.append(LeaderboardEntry(
            rank=idx,
            participant_id=p.id,
            name=p.name,
            total_points=p.total_points or 0,
            marker=marker_for(idx, markers),
            game_id=getattr(p, 'game_id', None),
            game_name=(game_names or {}).get(getattr(p, 'game_id', None)),
        ))
    return entries


def build_game_leaderboard(participants: Iterable) -> List[LeaderboardEntry]:
    return _rank(participants, GAME_MARKERS)


def build_cross_game_leaderboard(user_id: int) -> List[LeaderboardEntry]:
    """Rank every participant of every game the user owns.

    Participants are fetched with one ``game_id IN (...)`` query.
    """
    games = Game.query.filter_by(user_id=user_id).order_by(Game.id).all()
    if not games:
        return []
    names = {g.id: g.group_name for g in games}
    participants = (
        Participant.query.filter(Participant.game_id.in_(list(names)))
        .order_by(Participant.game_id, Participant.id)
        .all()
    )
    return _rank(participants, PODIUM_MARKERS, names)

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from konsept import db
from konsept.changefeed import publish_change
from konsept.errors import StoreError, ValidationError
from konsept.models import Game, Participant, Round, Score
from konsept.store import commit

# Score.points and Participant.total_points are 32-bit INTEGER columns
MAX_POINTS = 2 ** 31 - 1


@dataclass
class ParticipantWithRoundScores:
    participant_id: int
    name: str
    total_points: int
    round_scores: Dict[int, int] = field(default_factory=dict)

    def to_dict(self):
        return {
            'participant_id': self.participant_id,
            'name': self.name,
            'total_points': self.total_points,
            'round_scores': dict(self.round_scores),
        }


def combine(participants: Iterable, rounds: Iterable, scores: Iterable) -> List[ParticipantWithRoundScores]:
    """Attach per-round points to each participant.

    Every participant gets exactly one entry per round passed in, 0 where
    no score was recorded. Result is ordered by ``total_points`` descending;
    ties keep their input order.
    """
    rounds = list(rounds)
    points = {}
    for s in scores:
        points.setdefault((s.round_id, s.participant_id), s.points or 0)

    combined = []
    for p in participants:
        combined.append(ParticipantWithRoundScores(
            participant_id=p.id,
            name=p.name,
            total_points=p.total_points or 0,
            round_scores={r.id: points.get((r.id, p.id), 0) for r in rounds},
        ))
    return sorted(combined, key=lambda row: row.total_points, reverse=True)


def recompute_totals(game_id: int) -> Dict[int, int]:
    """Rewrite ``total_points`` of every participant in the game from its scores.

    Runs inside the caller's transaction; the caller commits.
    """
    db.session.flush()
    sums = dict(
        db.session.query(Score.participant_id, func.coalesce(func.sum(Score.points), 0))
        .join(Participant, Participant.id == Score.participant_id)
        .filter(Participant.game_id == game_id)
        .group_by(Score.participant_id)
        .all()
    )
    totals = {}
    for p in Participant.query.filter_by(game_id=game_id).all():
        total = int(sums.get(p.id, 0))
        if total > MAX_POINTS:
            raise ValidationError(f"Total for participant {p.id} would exceed {MAX_POINTS}")
        p.total_points = total
        totals[p.id] = p.total_points
    return totals


def _normalize_points(points_by_participant: Mapping, participant_ids) -> Dict[int, int]:
    if points_by_participant is None:
        return {}
    if not isinstance(points_by_participant, Mapping):
        raise ValidationError('Scores must be a mapping of participant id to points')
    normalized = {}
    for key, value in points_by_participant.items():
        try:
            pid = int(key)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid participant id: {key!r}")
        if pid not in participant_ids:
            raise ValidationError(f"Participant {pid} is not in this game")
        if value is None:
            value = 0
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"Points for participant {pid} must be a non-negative integer")
        if value > MAX_POINTS:
            raise ValidationError(f"Points for participant {pid} must be at most {MAX_POINTS}")
        normalized[pid] = value
    return normalized


def submit_round_scores(game: Game, round_id, points_by_participant: Mapping) -> Dict[int, int]:
    """Replace the full score set of one round.

    Old rows are deleted and one row per participant is inserted, with the
    totals recomputed, all in a single transaction. Returns the stored
    ``{participant_id: points}``.
    """
    rnd = Round.query.filter_by(id=round_id, game_id=game.id).first()
    if rnd is None:
        raise ValidationError(f"Round {round_id} does not belong to game {game.id}")

    participants = Participant.query.filter_by(game_id=game.id).order_by(Participant.id).all()
    points = _normalize_points(points_by_participant, {p.id for p in participants})

    stored = {}
    try:
        Score.query.filter_by(round_id=rnd.id).delete(synchronize_session=False)
        for p in participants:
            stored[p.id] = points.get(p.id, 0)
            db.session.add(Score(round_id=rnd.id, participant_id=p.id, points=stored[p.id]))
        recompute_totals(game.id)
    except ValidationError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[scores-failed] game={game.id} round={rnd.id} detail={exc}")
        raise StoreError('Could not save round scores') from exc
    commit('save round scores')

    current_app.logger.info(f"[scores-submit] game={game.id} round={rnd.id} rows={len(stored)}")
    publish_change('scores', game.id, 'replace')
    return stored

from flask import current_app

from konsept import db
from konsept.changefeed import publish_change
from konsept.errors import PreconditionError, ValidationError
from konsept.models import Game, Participant, Round, Score
from konsept.store import check_length, commit


def get_round(game: Game, round_id) -> Round:
    rnd = Round.query.filter_by(id=round_id, game_id=game.id).first()
    if rnd is None:
        raise ValidationError(f"Round {round_id} does not belong to game {game.id}")
    return rnd


def list_rounds(game: Game):
    return Round.query.filter_by(game_id=game.id).order_by(Round.round_number).all()


def create_round(game: Game) -> Round:
    """Append the next round to the game.

    Numbers are count + 1; the (game_id, round_number) unique constraint
    turns a concurrent duplicate into a StoreError.
    """
    if Participant.query.filter_by(game_id=game.id).count() == 0:
        raise PreconditionError('Add participants before creating a round')

    number = Round.query.filter_by(game_id=game.id).count() + 1
    rnd = Round(game_id=game.id, round_number=number)
    db.session.add(rnd)
    commit('create round')

    current_app.logger.info(f"[round-create] game={game.id} round={rnd.round_number} id={rnd.id}")
    publish_change('rounds', game.id, 'insert')
    return rnd


def rename_round(game: Game, round_id, new_name) -> Round:
    # Stored as submitted; an empty name displays as "Round N"
    if new_name is not None and not isinstance(new_name, str):
        raise ValidationError('Round name must be a string')
    if new_name is not None:
        check_length(new_name, Round.__table__.c.round_name, 'Round name')
    rnd = get_round(game, round_id)
    rnd.round_name = new_name
    db.session.add(rnd)
    commit('rename round')

    current_app.logger.info(f"[round-rename] game={game.id} round={rnd.round_number} name={new_name!r}")
    publish_change('rounds', game.id, 'update')
    return rnd


def round_snapshot(game: Game, round_id) -> dict:
    """The round with every participant's points for it (0 if unscored)."""
    rnd = get_round(game, round_id)
    points = {s.participant_id: s.points for s in Score.query.filter_by(round_id=rnd.id).all()}
    participants = Participant.query.filter_by(game_id=game.id).order_by(Participant.id).all()
    return {
        'round': rnd.to_dict(),
        'scores': [
            {'participant_id': p.id, 'name': p.name, 'points': points.get(p.id, 0)}
            for p in participants
        ],
    }

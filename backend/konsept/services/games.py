"""Game and participant bookkeeping outside the scoring rules."""

from flask import current_app
from sqlalchemy import func

from konsept import db
from konsept.access import is_admin
from konsept.changefeed import publish_change
from konsept.errors import ValidationError
from konsept.models import Concept, Game, Participant
from konsept.store import check_length, commit


def create_game(user, concept_id, group_name) -> Game:
    group_name = (group_name or '').strip() if isinstance(group_name, str) else ''
    if not group_name:
        raise ValidationError('Group name is required')
    check_length(group_name, Game.__table__.c.group_name, 'Group name')
    try:
        concept = db.session.get(Concept, int(concept_id))
    except (TypeError, ValueError):
        concept = None
    if concept is None or not concept.active:
        raise ValidationError('Choose an available concept')

    game = Game(user_id=user.id, concept_id=concept.id, group_name=group_name)
    db.session.add(game)
    commit('create game')
    current_app.logger.info(f"[game-create] game={game.id} owner={user.id} concept={concept.id}")
    return game


def list_games(user):
    query = Game.query
    if not is_admin(user):
        query = query.filter_by(user_id=user.id)
    return query.order_by(Game.created_at.desc(), Game.id.desc()).all()


def list_participants(game: Game):
    return (
        Participant.query.filter_by(game_id=game.id)
        .order_by(Participant.total_points.desc(), Participant.id)
        .all()
    )


def add_participant(game: Game, name, user_id=None) -> Participant:
    name = name.strip() if isinstance(name, str) else ''
    if not name:
        raise ValidationError('Participant name is required')
    check_length(name, Participant.__table__.c.name, 'Participant name')
    participant = Participant(game_id=game.id, name=name, user_id=user_id, total_points=0)
    db.session.add(participant)
    commit('add participant')
    current_app.logger.info(f"[participant-add] game={game.id} participant={participant.id}")
    publish_change('participants', game.id, 'insert')
    return participant


def dashboard_stats(user) -> dict:
    owned = Game.query.filter_by(user_id=user.id)
    game_ids = [g.id for g in owned.with_entities(Game.id).all()]
    total_participants = 0
    if game_ids:
        total_participants = (
            db.session.query(func.count(Participant.id))
            .filter(Participant.game_id.in_(game_ids))
            .scalar()
        ) or 0
    limit = int(current_app.config.get('RECENT_GAMES_LIMIT', 3))
    recent = owned.order_by(Game.created_at.desc(), Game.id.desc()).limit(limit).all()
    return {
        'total_games': len(game_ids),
        'total_participants': total_participants,
        'recent_games': [g.to_dict() for g in recent],
    }

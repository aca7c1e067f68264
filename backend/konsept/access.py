"""Row-level access rules for games.

Owners and admins manage a game; users bound to one of its participants
(through an accepted invitation) may view it.
"""

from flask import current_app

from konsept import db
from konsept.errors import NotFoundError, PermissionDeniedError
from konsept.models import Game, Participant


def is_admin(user) -> bool:
    return bool(user and user.has_role(current_app.config.get('ADMIN_ROLE', 'admin')))


def can_manage(user, game: Game) -> bool:
    return game.user_id == user.id or is_admin(user)


def can_view(user, game: Game) -> bool:
    if can_manage(user, game):
        return True
    return Participant.query.filter_by(game_id=game.id, user_id=user.id).first() is not None


def get_game(game_id) -> Game:
    game = db.session.get(Game, game_id)
    if game is None:
        raise NotFoundError(f"Game {game_id} not found")
    return game


def game_for_viewer(user, game_id) -> Game:
    game = get_game(game_id)
    if not can_view(user, game):
        raise PermissionDeniedError('You do not have access to this game')
    return game


def game_for_manager(user, game_id) -> Game:
    game = get_game(game_id)
    if not can_manage(user, game):
        raise PermissionDeniedError('Only the game owner may change this game')
    return game

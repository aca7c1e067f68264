from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from konsept.access import game_for_manager, game_for_viewer
from konsept.api import json_body
from konsept.services import games as game_service
from konsept.services import invitations as invitation_service
from konsept.services.scoring import aggregator, rounds
from konsept.services.scoring.leaderboard import build_cross_game_leaderboard, build_game_leaderboard
from konsept.services.scoring.realtime import game_board


games = Blueprint('games', __name__)


@games.route('', methods=['GET'])
@login_required
def list_games():
    return jsonify([g.to_dict() for g in game_service.list_games(current_user)])


@games.route('', methods=['POST'])
@login_required
def create_game():
    data = json_body()
    game = game_service.create_game(current_user, data.get('concept_id'), data.get('group_name'))
    return jsonify(game.to_dict()), 201


@games.route('/dashboard', methods=['GET'])
@login_required
def dashboard():
    return jsonify(game_service.dashboard_stats(current_user))


@games.route('/leaderboard', methods=['GET'])
@login_required
def cross_game_leaderboard():
    entries = build_cross_game_leaderboard(current_user.id)
    return jsonify([e.to_dict() for e in entries])


@games.route('/<int:game_id>', methods=['GET'])
@login_required
def get_game(game_id):
    game = game_for_viewer(current_user, game_id)
    return jsonify(game.to_dict())


@games.route('/<int:game_id>/board', methods=['GET'])
@login_required
def get_board(game_id):
    """Participants with per-round points, as pushed to open game views."""
    game = game_for_viewer(current_user, game_id)
    return jsonify(game_board(game.id))


@games.route('/<int:game_id>/leaderboard', methods=['GET'])
@login_required
def get_game_leaderboard(game_id):
    game = game_for_viewer(current_user, game_id)
    entries = build_game_leaderboard(game_service.list_participants(game))
    return jsonify([e.to_dict() for e in entries])


@games.route('/<int:game_id>/participants', methods=['GET'])
@login_required
def list_participants(game_id):
    game = game_for_viewer(current_user, game_id)
    return jsonify([p.to_dict() for p in game_service.list_participants(game)])


@games.route('/<int:game_id>/participants', methods=['POST'])
@login_required
def add_participant(game_id):
    data = json_body()
    game = game_for_manager(current_user, game_id)
    participant = game_service.add_participant(game, data.get('name'))
    return jsonify(participant.to_dict()), 201


@games.route('/<int:game_id>/rounds', methods=['GET'])
@login_required
def list_rounds(game_id):
    game = game_for_viewer(current_user, game_id)
    return jsonify([r.to_dict() for r in rounds.list_rounds(game)])


@games.route('/<int:game_id>/rounds', methods=['POST'])
@login_required
def create_round(game_id):
    game = game_for_manager(current_user, game_id)
    return jsonify(rounds.create_round(game).to_dict()), 201


@games.route('/<int:game_id>/rounds/<int:round_id>', methods=['PATCH'])
@login_required
def rename_round(game_id, round_id):
    data = json_body()
    game = game_for_manager(current_user, game_id)
    return jsonify(rounds.rename_round(game, round_id, data.get('round_name')).to_dict())


@games.route('/<int:game_id>/rounds/<int:round_id>/scores', methods=['GET'])
@login_required
def get_round_scores(game_id, round_id):
    game = game_for_viewer(current_user, game_id)
    return jsonify(rounds.round_snapshot(game, round_id))


@games.route('/<int:game_id>/rounds/<int:round_id>/scores', methods=['PUT'])
@login_required
def submit_round_scores(game_id, round_id):
    data = json_body()
    game = game_for_manager(current_user, game_id)
    aggregator.submit_round_scores(game, round_id, data.get('scores'))
    return jsonify(rounds.round_snapshot(game, round_id))


@games.route('/<int:game_id>/invitations', methods=['POST'])
@login_required
def invite(game_id):
    data = json_body()
    game = game_for_manager(current_user, game_id)
    invitation = invitation_service.invite(game, current_user, data.get('email'))
    return jsonify(invitation.to_dict()), 201

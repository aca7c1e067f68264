from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from konsept.services import invitations as invitation_service


invitations = Blueprint('invitations', __name__)


@invitations.route('', methods=['GET'])
@login_required
def inbox():
    return jsonify([inv.to_dict() for inv in invitation_service.inbox(current_user)])


@invitations.route('/<int:invitation_id>/accept', methods=['POST'])
@login_required
def accept(invitation_id):
    participant = invitation_service.accept(invitation_id, current_user)
    return jsonify({'message': 'Invitation accepted', 'participant': participant.to_dict()})


@invitations.route('/<int:invitation_id>/reject', methods=['POST'])
@login_required
def reject(invitation_id):
    invitation = invitation_service.reject(invitation_id, current_user)
    return jsonify(invitation.to_dict())

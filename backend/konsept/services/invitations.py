from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from konsept import db
from konsept.changefeed import publish_change
from konsept.errors import NotFoundError, PermissionDeniedError, PreconditionError, StoreError, ValidationError
from konsept.models import Game, GameInvitation, Participant
from konsept.store import check_length, commit


def _normalize_email(email) -> str:
    email = email.strip().lower() if isinstance(email, str) else ''
    if '@' not in email or email.startswith('@') or email.endswith('@'):
        raise ValidationError('A valid email address is required')
    check_length(email, GameInvitation.__table__.c.invitee_email, 'Email')
    return email


def invite(game: Game, inviter, email) -> GameInvitation:
    email = _normalize_email(email)
    existing = GameInvitation.query.filter_by(game_id=game.id, invitee_email=email, status='pending').first()
    if existing:
        return existing
    invitation = GameInvitation(game_id=game.id, inviter_id=inviter.id, invitee_email=email)
    db.session.add(invitation)
    commit('create invitation')
    current_app.logger.info(f"[invite] game={game.id} invitation={invitation.id}")
    return invitation


def inbox(user):
    return (
        GameInvitation.query.filter_by(invitee_email=user.email.lower())
        .order_by(GameInvitation.created_at.desc(), GameInvitation.id.desc())
        .all()
    )


def _pending_for(invitation_id, user) -> GameInvitation:
    invitation = db.session.get(GameInvitation, invitation_id)
    if invitation is None:
        raise NotFoundError(f"Invitation {invitation_id} not found")
    if invitation.invitee_email != user.email.lower():
        raise PermissionDeniedError('This invitation is addressed to someone else')
    if invitation.status != 'pending':
        raise PreconditionError(f"Invitation is already {invitation.status}")
    return invitation


def accept(invitation_id, user) -> Participant:
    """Accept and join the game as a participant named after the profile."""
    invitation = _pending_for(invitation_id, user)
    name = user.display_name or user.email.split('@')[0] or 'Unknown'
    try:
        invitation.status = 'accepted'
        invitation.invitee_id = user.id
        invitation.updated_at = datetime.now(timezone.utc)
        participant = Participant(game_id=invitation.game_id, user_id=user.id, name=name, total_points=0)
        db.session.add(participant)
        db.session.flush()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError('Could not accept invitation') from exc
    commit('accept invitation')
    current_app.logger.info(f"[invite-accept] invitation={invitation.id} participant={participant.id}")
    publish_change('participants', invitation.game_id, 'insert')
    return participant


def reject(invitation_id, user) -> GameInvitation:
    invitation = _pending_for(invitation_id, user)
    invitation.status = 'rejected'
    invitation.updated_at = datetime.now(timezone.utc)
    commit('reject invitation')
    current_app.logger.info(f"[invite-reject] invitation={invitation.id}")
    return invitation

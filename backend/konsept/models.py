from datetime import datetime, timezone
from konsept import db, bcrypt
from flask_login import UserMixin


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    # user_profiles.display_name in the hosted schema
    display_name = db.Column(db.String(64), nullable=True)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    roles = db.relationship('UserRole', backref='user', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def has_role(self, role):
        return self.roles.filter_by(role=role).first() is not None

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'display_name': self.display_name,
            'created_at': _iso(self.created_at),
        }


class UserRole(db.Model):
    __tablename__ = 'user_roles'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False)
    __table_args__ = (db.UniqueConstraint('user_id', 'role', name='uq_user_role'),)


class Concept(db.Model):
    __tablename__ = 'concepts'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Integer, default=0, nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price': self.price,
        }


class Game(db.Model):
    __tablename__ = 'games'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    concept_id = db.Column(db.Integer, db.ForeignKey('concepts.id'), nullable=False)
    group_name = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    concept = db.relationship('Concept')
    participants = db.relationship('Participant', back_populates='game', lazy='dynamic')
    rounds = db.relationship('Round', back_populates='game', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'concept_id': self.concept_id,
            'concept_name': self.concept.name if self.concept else None,
            'group_name': self.group_name,
            'created_at': _iso(self.created_at),
        }


class Participant(db.Model):
    __tablename__ = 'participants'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('games.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    name = db.Column(db.String(64), nullable=False)
    # Cached sum of this participant's Score rows; rewritten with every score write
    total_points = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    game = db.relationship('Game', back_populates='participants')

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'user_id': self.user_id,
            'name': self.name,
            'total_points': self.total_points or 0,
        }


class Round(db.Model):
    __tablename__ = 'rounds'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('games.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    round_name = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    game = db.relationship('Game', back_populates='rounds')
    scores = db.relationship('Score', back_populates='round', lazy='dynamic')
    __table_args__ = (db.UniqueConstraint('game_id', 'round_number', name='uq_round_game_number'),)

    @property
    def display_name(self):
        return self.round_name or f"Round {self.round_number}"

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'round_number': self.round_number,
            'round_name': self.round_name,
            'display_name': self.display_name,
            'created_at': _iso(self.created_at),
        }


class Score(db.Model):
    __tablename__ = 'scores'
    id = db.Column(db.Integer, primary_key=True)
    round_id = db.Column(db.Integer, db.ForeignKey('rounds.id'), nullable=False, index=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participants.id'), nullable=False, index=True)
    points = db.Column(db.Integer, default=0, nullable=False)
    round = db.relationship('Round', back_populates='scores')
    __table_args__ = (db.UniqueConstraint('round_id', 'participant_id', name='uq_score_round_participant'),)

    def to_dict(self):
        return {
            'round_id': self.round_id,
            'participant_id': self.participant_id,
            'points': self.points,
        }


class GameInvitation(db.Model):
    __tablename__ = 'game_invitations'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('games.id'), nullable=False, index=True)
    inviter_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    invitee_email = db.Column(db.String(255), nullable=False, index=True)
    invitee_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    status = db.Column(db.String(16), default='pending', nullable=False)  # pending, accepted, rejected
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=True)
    game = db.relationship('Game')
    inviter = db.relationship('User', foreign_keys=[inviter_id])

    def to_dict(self):
        inviter = self.inviter
        return {
            'id': self.id,
            'game_id': self.game_id,
            'group_name': self.game.group_name if self.game else None,
            'concept_name': self.game.concept.name if self.game and self.game.concept else None,
            'invitee_email': self.invitee_email,
            'status': self.status,
            'inviter': {
                'display_name': (inviter.display_name if inviter else None) or 'Unknown',
                'email': inviter.email if inviter else '',
            },
            'created_at': _iso(self.created_at),
        }

from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from konsept import db
from konsept.access import is_admin
from konsept.api import json_body
from konsept.models import User
from konsept.store import check_length

auth = Blueprint('auth', __name__)


@auth.route('/register', methods=['POST'])
def register():
    data = json_body()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')
    if not email or not password:
        return jsonify({'error': 'Missing email or password'}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 400

    display_name = (data.get('display_name') or '').strip() or None
    check_length(email, User.__table__.c.email, 'Email')
    if display_name:
        check_length(display_name, User.__table__.c.display_name, 'Display name')

    user = User(email=email, display_name=display_name)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)
    return jsonify({'user': user.to_dict()}), 201


@auth.route('/login', methods=['POST'])
def login():
    data = json_body()
    user = User.query.filter_by(email=(data.get('email') or '').strip().lower()).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify({'user': user.to_dict()})
    return jsonify({'error': 'Invalid email or password'}), 401


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})


@auth.route('/me', methods=['GET'])
@login_required
def me():
    payload = current_user.to_dict()
    payload['is_admin'] = is_admin(current_user)
    return jsonify(payload)

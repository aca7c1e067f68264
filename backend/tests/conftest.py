import os
import sys
import pytest
from flask import g

# Ensure the backend root (containing the `konsept` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from konsept import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'DEBUG'
    BCRYPT_LOG_ROUNDS = 4
    ADMIN_ROLE = 'admin'
    RECENT_GAMES_LIMIT = 3
    REALTIME_NAMESPACE = '/ws'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)

    @application.before_request
    def _reset_cached_user():
        # Requests reuse the fixture's app context, so drop the user Flask-Login cached on g
        g.pop('_login_user', None)

    with application.app_context():
        # Ensure models are imported so tables are created
        import konsept.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_user(flask_app):
    from konsept.models import User, UserRole

    def _make(email, display_name=None, password='password', admin=False):
        user = User(email=email, display_name=display_name)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()
        if admin:
            db.session.add(UserRole(user_id=user.id, role='admin'))
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def login(flask_app):
    def _login(email, password='password'):
        test_client = flask_app.test_client()
        res = test_client.post('/api/auth/login', json={'email': email, 'password': password})
        assert res.status_code == 200
        return test_client

    return _login


@pytest.fixture()
def concept(flask_app):
    from konsept.models import Concept
    c = Concept(name='Quiz-kveld', description='Fem runder', price=199)
    db.session.add(c)
    db.session.commit()
    return c


@pytest.fixture()
def owner(make_user):
    return make_user('owner@example.com', display_name='Owner')


@pytest.fixture()
def game(owner, concept):
    from konsept.services.games import create_game
    return create_game(owner, concept.id, 'Gutta på tur')


@pytest.fixture()
def add_participants(game):
    from konsept.services.games import add_participant

    def _add(*names, target=None):
        return [add_participant(target or game, n) for n in names]

    return _add


@pytest.fixture()
def owner_client(owner, login):
    return login(owner.email)


@pytest.fixture()
def sio_client(flask_app, owner_client):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=owner_client,
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass

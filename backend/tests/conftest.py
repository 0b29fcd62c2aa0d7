import os
import sys
import pytest

# Ensure the backend root (containing the `scorekeeper` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from scorekeeper import create_app, db, socketio
from scorekeeper.services.rooms import Identity, RoomRegistry, RoomService


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    ROOM_STORE = 'sql'
    ROOM_CODE_LENGTH = 6
    MIN_PLAYERS = 2
    ALLOW_LATE_JOIN = False
    ROOM_SAVE_ATTEMPTS = 3
    RECENT_GAMES_LIMIT = 10
    LOG_LEVEL = 'DEBUG'
    BCRYPT_LOG_ROUNDS = 4


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import scorekeeper.models  # noqa: F401
        db.create_all()
    # Requests must get their own app context: a context held open here would
    # share flask.g (and Flask-Login's cached user) across test clients.
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def user_client(flask_app):
    """Factory for test clients each logged in as a freshly registered user."""
    def _make(username):
        test_client = flask_app.test_client()
        res = test_client.post('/register', json={'username': username, 'password': 'password'})
        assert res.status_code == 201
        test_client.user_id = res.get_json()['user']['id']
        return test_client
    return _make


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def registry():
    return RoomRegistry()


@pytest.fixture()
def service(registry):
    return RoomService(registry)


@pytest.fixture()
def alice():
    return Identity(user_id='a', display_name='Alice', avatar_ref='alice.png')


@pytest.fixture()
def bob():
    return Identity(user_id='b', display_name='Bob')


@pytest.fixture()
def cara():
    return Identity(user_id='c', display_name='Cara')

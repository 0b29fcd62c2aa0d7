import logging

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    log_level = flask_app.config.get('LOG_LEVEL', 'INFO')
    flask_app.logger.setLevel(log_level)
    logging.getLogger('scorekeeper').setLevel(log_level)

    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])
    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One registry per application; rooms never live in module globals
    from scorekeeper.services.rooms import RoomRegistry, RoomService, InMemoryRoomStore
    if flask_app.config.get('ROOM_STORE', 'sql') == 'memory':
        store = InMemoryRoomStore()
    else:
        from scorekeeper.services.rooms.store import SqlRoomStore
        store = SqlRoomStore()
    registry = RoomRegistry(
        store,
        code_length=int(flask_app.config.get('ROOM_CODE_LENGTH', 6)),
        save_attempts=int(flask_app.config.get('ROOM_SAVE_ATTEMPTS', 3)),
    )
    flask_app.extensions['room_registry'] = registry
    flask_app.extensions['room_service'] = RoomService(
        registry,
        min_players=int(flask_app.config.get('MIN_PLAYERS', 2)),
        allow_late_join=bool(flask_app.config.get('ALLOW_LATE_JOIN', False)),
    )
    flask_app.logger.info(f"[init] room_store={type(store).__name__}")

    from scorekeeper.main import main
    flask_app.register_blueprint(main)

    from scorekeeper.api.rooms import rooms, users, handle_room_error
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')
    flask_app.register_blueprint(users, url_prefix='/api/users')

    from scorekeeper.services.rooms.errors import RoomError
    flask_app.register_error_handler(RoomError, handle_room_error)

    from scorekeeper.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from scorekeeper.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'unauthorized'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def get_room_service():
    from flask import current_app
    return current_app.extensions['room_service']

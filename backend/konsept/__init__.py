from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config
from konsept.changefeed import ChangeFeed

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
changes = ChangeFeed()
allowed_origins = [
    "http://localhost:8080",
    "http://127.0.0.1:8080",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    changes.init_app(flask_app)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from konsept.errors import register_error_handlers
    register_error_handlers(flask_app)

    from konsept.auth import auth
    flask_app.register_blueprint(auth, url_prefix='/api/auth')

    from konsept.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from konsept.api.invitations import invitations
    flask_app.register_blueprint(invitations, url_prefix='/api/invitations')

    from konsept.api.catalog import catalog
    flask_app.register_blueprint(catalog, url_prefix='/api')

    # Importing here ensures the handlers bind to the initialized socketio instance
    from konsept.socketio_events import register_socketio_handlers
    register_socketio_handlers(flask_app.config.get('REALTIME_NAMESPACE', '/ws'))

    from konsept.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401

    @click.command('db-reset')
    @click.option('--admin-email', default='admin@vennespill.no')
    def db_reset_command(admin_email):
        """Drops, recreates, and seeds the database."""
        from konsept.models import Concept, UserRole
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            concepts = [
                ('Quiz-kveld', 'Fem runder med spørsmål for hele gjengen', 199),
                ('Hyttemesterskap', 'Utendørs grener for en helg på hytta', 299),
                ('Julebord-olympiade', 'Konkurranser til julebordet', 249),
            ]
            for name, description, price in concepts:
                db.session.add(Concept(name=name, description=description, price=price))

            admin = User(email=admin_email, display_name='Admin')
            admin.set_password('password')
            db.session.add(admin)
            db.session.flush()
            db.session.add(UserRole(user_id=admin.id, role=flask_app.config['ADMIN_ROLE']))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def _allowed_origins(config) -> list:
    raw = config.get('CORS_ORIGINS') or ''
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return [o.strip() for o in raw.split(',') if o.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = _allowed_origins(flask_app.config)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from reaction_grid.main import main
    flask_app.register_blueprint(main)

    # Mounted at the root to match the mini-app's fetch("/score") / fetch("/user")
    from reaction_grid.api.score import score
    flask_app.register_blueprint(score)

    from reaction_grid.api.user import user
    flask_app.register_blueprint(user)

    from reaction_grid.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    @click.option('--seed/--no-seed', default=True, help='Insert demo players after recreating tables.')
    def db_reset_command(seed):
        """Drops, recreates, and optionally seeds the database."""
        from reaction_grid.models import User
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            if seed:
                demo = [(1, 'alice', 'Alice'), (2, 'bob', 'Bob'), (3, 'cara', 'Cara')]
                for fid, username, display_name in demo:
                    db.session.add(User(fid=fid, username=username, display_name=display_name))
                db.session.commit()
            print('Database has been reset' + (' and seeded!' if seed else '.'))

    flask_app.cli.add_command(db_reset_command)

    return flask_app

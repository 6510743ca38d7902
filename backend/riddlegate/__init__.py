from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_mail import Mail
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from riddlegate.config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
mail = Mail()
socketio = SocketIO(async_mode=None)

from riddlegate.services.otp import OtpStore  # noqa: E402

otp_store = OtpStore()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    mail.init_app(flask_app)
    otp_store.init_app(flask_app)
    CORS(flask_app, supports_credentials=True, origins=origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from riddlegate.errors import register_error_handlers
    register_error_handlers(flask_app)

    from riddlegate.main import main
    flask_app.register_blueprint(main)

    from riddlegate.api.game import game
    flask_app.register_blueprint(game, url_prefix='/api/game')

    from riddlegate.api.admin import admin
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    from riddlegate.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    # Flask-Login user loader
    from riddlegate.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Not authorized, please log in', 'code': 'NOT_AUTHENTICATED'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from riddlegate.seed import seed_sample_game
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_sample_game(
                admin_email=flask_app.config['ADMIN_EMAIL'],
                admin_password=flask_app.config['ADMIN_PASSWORD'],
            )
            click.echo('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app

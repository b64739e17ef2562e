import os
from datetime import timedelta
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate, upgrade
from dotenv import load_dotenv
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlite3 import Connection as SQLite3Connection

# Load environment variables (override=True ensures .env values take precedence)
load_dotenv(override=True)

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    if isinstance(dbapi_connection, SQLite3Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def create_app(config_name=None):
    """Application factory pattern."""
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///dev.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Session configuration - 30 day persistent sessions
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=30)
    app.config['SESSION_COOKIE_SECURE'] = os.environ.get('RAILWAY_ENVIRONMENT') is not None  # HTTPS only in production
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

    # Admin password for simple auth (MVP)
    app.config['ADMIN_PASSWORD'] = os.environ.get('ADMIN_PASSWORD', 'squad-admin-2024')

    # bcrypt work factor for squad PINs
    app.config['PIN_HASH_ROUNDS'] = int(os.environ.get('PIN_HASH_ROUNDS', '10'))

    # Timezone used when a creator doesn't send one with the date/time
    app.config['DEFAULT_TIMEZONE'] = os.environ.get('DEFAULT_TIMEZONE', 'UTC')

    if config_name == 'testing':
        app.config['TESTING'] = True
        app.config['SECRET_KEY'] = 'testing'
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
        app.config['ADMIN_PASSWORD'] = 'admin-pass'
        app.config['PIN_HASH_ROUNDS'] = 4

    # Fix for postgres:// vs postgresql:// (some providers use older postgres:// format)
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace(
            'postgres://', 'postgresql://', 1
        )

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    from squadup.services.change_feed import change_feed
    change_feed.init_app(app)

    # Register blueprints
    from squadup.routes.main import main_bp
    from squadup.routes.auth import auth_bp
    from squadup.routes.api import api_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)

    from squadup.cli import register_commands
    register_commands(app)

    register_error_handlers(app)

    # Import models so they're known to Flask-Migrate
    from squadup import models

    # Auto-run migrations in production (Railway)
    if os.environ.get('RAILWAY_ENVIRONMENT'):
        with app.app_context():
            upgrade()

    return app


def register_error_handlers(app):
    """Translate service errors into JSON responses."""
    from squadup.errors import SquadUpError

    @app.errorhandler(SquadUpError)
    def handle_squadup_error(error):
        return jsonify(error.to_dict()), error.status_code

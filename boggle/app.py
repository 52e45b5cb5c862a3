import logging
import os

import click
from flask import Flask, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .config import config
from .models import db
from .auth import login_manager
from .errors import BoggleError, ValidationError
from .dictionary import TableDictionary, load_words
from .display_names import is_valid_display_name
from .validation import json_body
from .game_engine import GameEngine
from .tournament_engine import TournamentEngine
from .janitor import Janitor
from .notifier import Notifier

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """Application factory for the Boggle service."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)

    # Initialize services
    notifier = Notifier.from_config(app.config)
    games = GameEngine(TableDictionary(), notifier=notifier)

    with app.app_context():
        db.create_all()

    # Store services on app for access in routes
    app.notifier = notifier
    app.games = games
    app.tournaments = TournamentEngine(games, notifier=notifier)
    app.janitor = Janitor.from_config(app.config)

    register_error_handlers(app)
    register_routes(app)
    register_commands(app)

    from .routes import games as game_routes, tournaments as tournament_routes
    app.register_blueprint(game_routes.bp)
    app.register_blueprint(tournament_routes.bp)

    return app


def register_error_handlers(app: Flask):

    @app.errorhandler(BoggleError)
    def handle_boggle_error(e):
        if e.status_code >= 500:
            logger.error(f"{request.method} {request.path} failed: {e.message}")
            db.session.rollback()
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.name.capitalize()}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        db.session.rollback()
        return jsonify({'error': 'Internal server error'}), 500


def register_routes(app: Flask):

    @app.route('/health')
    def health_check():
        """Health check endpoint."""
        try:
            db.session.execute(db.text('SELECT 1'))
            db_ok = True
        except SQLAlchemyError as e:
            logger.error(f"Health check database error: {e}")
            db.session.rollback()
            db_ok = False

        status = 'healthy' if db_ok else 'unhealthy'
        code = 200 if db_ok else 503
        return jsonify({
            'status': status,
            'database': 'connected' if db_ok else 'disconnected'
        }), code

    @app.route('/api/me')
    @login_required
    def api_me():
        return jsonify(current_user.to_dict())

    @app.route('/api/me/alias', methods=['POST'])
    @login_required
    def api_set_alias():
        data = json_body()
        alias = data.get('alias')
        if not is_valid_display_name(alias):
            raise ValidationError(
                'Alias must be 3-30 characters: letters, numbers, spaces, dashes or underscores'
            )

        current_user.alias = alias.strip()
        db.session.commit()
        return jsonify(current_user.to_dict())


def register_commands(app: Flask):

    @app.cli.command('janitor')
    def janitor_command():
        """Reap abandoned lobbies, stuck games and idle tournaments."""
        report = app.janitor.sweep()
        for key, count in report.items():
            click.echo(f"{key}: {count}")

    @app.cli.command('load-dictionary')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def load_dictionary_command(path):
        """Load a word list, one word per line, into the dictionary table."""
        with open(path, encoding='utf-8') as f:
            added = load_words(f)
        click.echo(f"Added {added} words")

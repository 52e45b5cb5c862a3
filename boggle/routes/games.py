from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from boggle.errors import ValidationError
from boggle.validation import bounded_int, json_body

bp = Blueprint('games', __name__, url_prefix='/boggle/api')


@bp.route('/games', methods=['GET'])
@login_required
def list_games():
    """Open games: lobbies and games in play."""
    return jsonify({'games': current_app.games.list_open_games()})


@bp.route('/games', methods=['POST'])
@login_required
def create_game():
    data = json_body()
    cfg = current_app.config
    timer_seconds = bounded_int(
        data, 'timer_seconds',
        cfg['DEFAULT_TIMER_SECONDS'], cfg['MIN_TIMER_SECONDS'], cfg['MAX_TIMER_SECONDS']
    )

    game = current_app.games.create_game(current_user.id, timer_seconds)
    return jsonify({'game': game.to_dict()}), 201


@bp.route('/games/<game_id>/join', methods=['POST'])
@login_required
def join_game(game_id):
    joined = current_app.games.join(game_id, current_user.id)
    return jsonify({'message': 'Joined game' if joined else 'Already joined'})


@bp.route('/games/<game_id>/start', methods=['POST'])
@login_required
def start_game(game_id):
    current_app.games.start(game_id, current_user.id)
    return jsonify(current_app.games.poll(game_id))


@bp.route('/games/<game_id>/state', methods=['GET'])
@login_required
def game_state(game_id):
    """Game state. Polling is also what ends a game once its time is up."""
    return jsonify(current_app.games.poll(game_id))


@bp.route('/games/<game_id>/submit', methods=['POST'])
@login_required
def submit_word(game_id):
    data = json_body()
    word = data.get('word')
    if not isinstance(word, str):
        raise ValidationError('Invalid word')

    entry = current_app.games.submit_word(game_id, current_user.id, word)
    return jsonify({'word': entry.word, 'points': entry.points})


@bp.route('/games/<game_id>/leave', methods=['POST'])
@login_required
def leave_game(game_id):
    deleted = current_app.games.leave(game_id, current_user.id)
    return jsonify({'message': 'Left game', 'game_deleted': deleted})


@bp.route('/history', methods=['GET'])
@login_required
def game_history():
    return jsonify({'games': current_app.games.get_history(current_user.id)})

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from boggle.validation import bounded_int, json_body, optional_bool

bp = Blueprint('tournaments', __name__, url_prefix='/boggle/api')


@bp.route('/tournaments', methods=['GET'])
@login_required
def list_tournaments():
    return jsonify({'tournaments': current_app.tournaments.list_open_tournaments()})


@bp.route('/tournaments', methods=['POST'])
@login_required
def create_tournament():
    data = json_body()
    cfg = current_app.config
    target_score = bounded_int(
        data, 'target_score', cfg['DEFAULT_TARGET_SCORE'], 1, cfg['MAX_TARGET_SCORE']
    )
    timer_seconds = bounded_int(
        data, 'timer_seconds',
        cfg['DEFAULT_TIMER_SECONDS'], cfg['MIN_TIMER_SECONDS'], cfg['MAX_TIMER_SECONDS']
    )

    tournament = current_app.tournaments.create_tournament(
        current_user.id, target_score, timer_seconds
    )
    return jsonify({'tournament': tournament.to_dict()}), 201


@bp.route('/tournaments/<tournament_id>/join', methods=['POST'])
@login_required
def join_tournament(tournament_id):
    joined = current_app.tournaments.join(tournament_id, current_user.id)
    return jsonify({'message': 'Joined tournament' if joined else 'Already joined'})


@bp.route('/tournaments/<tournament_id>/leave', methods=['POST'])
@login_required
def leave_tournament(tournament_id):
    deleted = current_app.tournaments.leave(tournament_id, current_user.id)
    return jsonify({'message': 'Left tournament', 'tournament_deleted': deleted})


@bp.route('/tournaments/<tournament_id>/start', methods=['POST'])
@login_required
def start_tournament(tournament_id):
    current_app.tournaments.start(tournament_id, current_user.id)
    return jsonify(current_app.tournaments.poll(tournament_id))


@bp.route('/tournaments/<tournament_id>/state', methods=['GET'])
@login_required
def tournament_state(tournament_id):
    """Tournament state. Polling scores finished games and starts the next one."""
    return jsonify(current_app.tournaments.poll(tournament_id))


@bp.route('/tournaments/<tournament_id>/ready', methods=['POST'])
@login_required
def set_ready(tournament_id):
    """Set the ready flag to the given value, or toggle it when none is given."""
    data = json_body()
    ready = optional_bool(data, 'ready')
    ready = current_app.tournaments.set_ready(tournament_id, current_user.id, ready)
    return jsonify({'ready': ready})


@bp.route('/tournaments/<tournament_id>/summary', methods=['GET'])
@login_required
def tournament_summary(tournament_id):
    return jsonify(current_app.tournaments.get_summary(tournament_id))


@bp.route('/tournament-history', methods=['GET'])
@login_required
def tournament_history():
    return jsonify({'tournaments': current_app.tournaments.get_history(current_user.id)})

# routes/main.py
# Публичные лидерборды и карточка команды. Живые обновления идут через Socket.IO (routes/live_events.py)

from flask import Blueprint, request, jsonify
from logic import compute_leaderboard, team_detail, room_activity, now_presenting
from store import ScoreStore


main_bp = Blueprint('main', __name__)


@main_bp.route('/leaderboard')
def leaderboard():
    track_id = request.args.get('track_id', type=int)
    room_id = request.args.get('room_id', type=int)
    teams = compute_leaderboard(ScoreStore(), track_id=track_id, room_id=room_id)
    return jsonify({'status': 'ok', 'track_id': track_id, 'room_id': room_id, 'teams': teams})


@main_bp.route('/teams/<int:team_id>')
def team_view(team_id):
    return jsonify(team_detail(ScoreStore(), team_id))


@main_bp.route('/rooms/activity')
def rooms_activity():
    track_id = request.args.get('track_id', type=int)
    return jsonify({'rooms': room_activity(ScoreStore(), track_id=track_id)})


@main_bp.route('/rooms/<int:room_id>/presenting')
def presenting(room_id):
    return jsonify({'room_id': room_id, 'presenting': now_presenting(ScoreStore(), room_id)})

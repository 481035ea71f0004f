# routes/vote.py
# Зрительское голосование

from flask import Blueprint, request, session, jsonify
from aggregation import public_vote_summary
from errors import ValidationError
from sessions import voter_session_from
from store import ScoreStore


vote_bp = Blueprint('vote', __name__, url_prefix='/vote')


@vote_bp.route('/teams/<int:team_id>', methods=['GET'])
def vote_page(team_id):
    store = ScoreStore()
    voter = voter_session_from(session)
    team = store.get_team(team_id)
    summary = public_vote_summary(store.fetch_votes(team_id))
    return jsonify({
        'team': team,
        'criteria': [
            {'id': c['id'], 'name': c['name'], 'max_score': c['max_score']}
            for c in store.fetch_criteria(team['track_id'])
        ],
        'vote_count': summary['voter_count'],
        'has_voted': store.has_voted(voter, team_id),
    })


@vote_bp.route('/teams/<int:team_id>', methods=['POST'])
def submit_vote(team_id):
    store = ScoreStore()
    voter = voter_session_from(session)
    data = request.get_json(silent=True) or {}
    raw_scores = data.get('scores')
    if not isinstance(raw_scores, dict) or not raw_scores:
        raise ValidationError('Пожалуйста, оцените все категории перед отправкой.')
    try:
        entries = {int(criterion_id): value for criterion_id, value in raw_scores.items()}
    except (TypeError, ValueError):
        raise ValidationError('Некорректный идентификатор критерия.')

    voted_before = store.add_public_votes(voter, team_id, entries)
    summary = public_vote_summary(store.fetch_votes(team_id))
    return jsonify({'status': 'ok', 'voted_before': voted_before, 'vote_count': summary['voter_count']}), 201

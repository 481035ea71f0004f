# routes/judge.py
# Судейство: команды комнаты, свои оценки, заготовки комментариев и выступающая команда

from functools import wraps
from flask import Blueprint, request, session, jsonify
from sqlalchemy import or_
from extensions import db
from models import Track, QuickSnippet
from models.quick_snippet import normalize_shortcut
from errors import PermissionDenied, ValidationError, NotFound
from logic import judging_progress, judge_history, now_presenting
from sessions import judge_session_from
from store import ScoreStore


judge_bp = Blueprint('judge', __name__, url_prefix='/judge')


def judge_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Контекст судьи собирается здесь и передается во view явно
        return f(judge_session_from(session), *args, **kwargs)
    return decorated_function


@judge_bp.route('/rooms/<int:room_id>/teams')
@judge_required
def room_teams(judge, room_id):
    if judge.role != 'admin' and judge.room_id != room_id:
        raise PermissionDenied('Вы не вошли в эту комнату.')
    return jsonify({'room_id': room_id, 'teams': judging_progress(ScoreStore(), room_id)})


@judge_bp.route('/teams/<int:team_id>/scores', methods=['GET'])
@judge_required
def my_scores(judge, team_id):
    store = ScoreStore()
    team = store.get_team(team_id)
    rows = store.fetch_judge_scores(judge, team_id=team_id)
    return jsonify({
        'team': team,
        'criteria': store.fetch_criteria(team['track_id']),
        'scores': {str(r['criterion_id']): r['score'] for r in rows},
        'comment': next((r['comment'] for r in rows if r['comment']), None),
    })


@judge_bp.route('/teams/<int:team_id>/scores', methods=['POST'])
@judge_required
def save_scores(judge, team_id):
    store = ScoreStore()
    team = store.get_team(team_id)
    if judge.role != 'admin' and judge.room_id != team['room_id']:
        raise PermissionDenied('Команда не из вашей комнаты.')

    data = request.get_json(silent=True) or {}
    raw_scores = data.get('scores')
    if not isinstance(raw_scores, dict) or not raw_scores:
        raise ValidationError('Необходимо выставить оценки по критериям.')
    try:
        entries = {int(criterion_id): value for criterion_id, value in raw_scores.items()}
    except (TypeError, ValueError):
        raise ValidationError('Некорректный идентификатор критерия.')

    # Оценка должна быть по каждому критерию трека, как в форме судьи
    missing = [c['name'] for c in store.fetch_criteria(team['track_id']) if c['id'] not in entries]
    if missing:
        raise ValidationError(f'Необходимо выставить оценку по критерию "{missing[0]}".')

    rows = store.replace_judge_scores(judge, team_id, entries, comment=data.get('comment'))
    return jsonify({'status': 'ok', 'saved': len(rows)})


@judge_bp.route('/history')
@judge_required
def history(judge):
    return jsonify({'history': judge_history(ScoreStore(), judge)})


@judge_bp.route('/snippets', methods=['GET'])
@judge_required
def snippets(judge):
    track_id = request.args.get('track_id', type=int)
    if not track_id:
        raise ValidationError('Укажите трек.')
    # Общие заготовки трека плюс собственные заготовки судьи
    owners = [QuickSnippet.judge_id.is_(None)]
    if judge.judge_id is not None:
        owners.append(QuickSnippet.judge_id == judge.judge_id)
    rows = (QuickSnippet.query.filter(QuickSnippet.track_id == track_id, or_(*owners))
            .order_by(QuickSnippet.shortcut).all())
    return jsonify({'snippets': [s.to_dict() for s in rows]})


@judge_bp.route('/snippets', methods=['POST'])
@judge_required
def add_snippet(judge):
    if judge.judge_id is None:
        raise PermissionDenied('Личные заготовки доступны только судьям с учетной записью.')
    data = request.get_json(silent=True) or {}
    track = db.session.get(Track, data.get('track_id')) if data.get('track_id') else None
    if track is None:
        raise NotFound('Трек не найден.')
    shortcut = normalize_shortcut(data.get('shortcut'))
    full_text = (data.get('full_text') or '').strip()
    if len(shortcut) < 2 or not full_text:
        raise ValidationError('Заполните сокращение и полный текст.')
    snippet = QuickSnippet(track_id=track.id, judge_id=judge.judge_id, shortcut=shortcut, full_text=full_text)
    db.session.add(snippet)
    db.session.commit()
    return jsonify(snippet.to_dict()), 201


@judge_bp.route('/snippet/<int:snippet_id>/delete', methods=['POST'])
@judge_required
def delete_own_snippet(judge, snippet_id):
    snippet = db.session.get(QuickSnippet, snippet_id)
    if snippet is None:
        raise NotFound('Заготовка не найдена.')
    if snippet.judge_id is None or snippet.judge_id != judge.judge_id:
        raise PermissionDenied('Можно удалять только свои заготовки.')
    db.session.delete(snippet)
    db.session.commit()
    return jsonify({'status': 'ok'})


@judge_bp.route('/rooms/<int:room_id>/presenting', methods=['POST'])
@judge_required
def set_presenting(judge, room_id):
    if judge.role != 'admin' and judge.room_id != room_id:
        raise PermissionDenied('Вы не вошли в эту комнату.')
    team_id = (request.get_json(silent=True) or {}).get('team_id')
    if team_id is not None and (isinstance(team_id, bool) or not isinstance(team_id, int)):
        raise ValidationError('Некорректный идентификатор команды.')
    store = ScoreStore()
    store.set_now_presenting(room_id, team_id)
    return jsonify({'room_id': room_id, 'presenting': now_presenting(store, room_id)})

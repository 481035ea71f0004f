# routes/admin.py

from functools import wraps
from flask import Blueprint, request, session, jsonify
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from extensions import db
from models import User, Track, Room, Team, Criterion, JudgeAssignment, Score, PublicVote, QuickSnippet
from models.quick_snippet import normalize_shortcut
from errors import ValidationError, NotFound, JudgingError
from logic import finalize_track, winners_report, find_close_teams, voting_analytics, event_overview
from sessions import admin_session_from
from store import ScoreStore


admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

CRITERION_TYPES = ['text', 'dropdown']


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        admin_session_from(session)
        return f(*args, **kwargs)
    return decorated_function


def _payload():
    return request.get_json(silent=True) or {}


def _get_or_404(model, object_id, message):
    obj = db.session.get(model, object_id) if object_id is not None else None
    if obj is None:
        raise NotFound(message)
    return obj


def _commit(conflict_message):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise JudgingError(conflict_message, status_code=409)


def track_to_dict(track):
    return {'id': track.id, 'name': track.name, 'description': track.description}


def room_to_dict(room):
    return {'id': room.id, 'name': room.name, 'track_id': room.track_id,
            'passcode': room.passcode, 'is_locked': room.is_locked}


def team_to_dict(team):
    return {'id': team.id, 'name': team.name, 'team_number': team.team_number,
            'track_id': team.track_id, 'room_id': team.room_id,
            'members': team.members or [], 'total_score': team.total_score}


def criterion_to_dict(criterion):
    return {'id': criterion.id, 'name': criterion.name, 'track_id': criterion.track_id,
            'type': criterion.type, 'max_score': criterion.max_score, 'options': criterion.options,
            'weightage': criterion.weightage, 'display_order': criterion.display_order}


def judge_to_dict(user):
    return {'id': user.id, 'code': user.code, 'full_name': user.full_name, 'role': user.role,
            'room_ids': [a.room_id for a in user.assignments]}


# --- БЛОК CRUD для Track ---
@admin_bp.route('/tracks', methods=['GET', 'POST'])
@admin_required
def manage_tracks():
    if request.method == 'POST':
        data = _payload()
        name = (data.get('name') or '').strip()
        if not name:
            raise ValidationError('Название трека является обязательным полем.')
        track = Track(name=name, description=data.get('description'))
        db.session.add(track)
        _commit(f'Трек с названием "{name}" уже существует.')
        return jsonify(track_to_dict(track)), 201

    return jsonify({'tracks': [track_to_dict(t) for t in Track.query.order_by(Track.name).all()]})


@admin_bp.route('/track/<int:track_id>/edit', methods=['POST'])
@admin_required
def edit_track(track_id):
    track = _get_or_404(Track, track_id, 'Трек не найден.')
    data = _payload()
    track.name = (data.get('name') or track.name).strip()
    track.description = data.get('description', track.description)
    _commit('Трек с таким названием уже существует.')
    return jsonify(track_to_dict(track))


@admin_bp.route('/track/<int:track_id>/delete', methods=['POST'])
@admin_required
def delete_track(track_id):
    track = _get_or_404(Track, track_id, 'Трек не найден.')
    db.session.delete(track)
    db.session.commit()
    return jsonify({'status': 'ok'})


# --- БЛОК CRUD для Room ---
@admin_bp.route('/rooms', methods=['GET', 'POST'])
@admin_required
def manage_rooms():
    if request.method == 'POST':
        data = _payload()
        name = (data.get('name') or '').strip()
        track_id = data.get('track_id')
        if not name or not track_id:
            raise ValidationError('Название и трек комнаты являются обязательными полями.')
        _get_or_404(Track, track_id, 'Трек не найден.')
        room = Room(name=name, track_id=track_id, passcode=data.get('passcode') or None)
        db.session.add(room)
        _commit('Комната с таким названием или кодом уже существует.')
        return jsonify(room_to_dict(room)), 201

    query = Room.query
    track_id = request.args.get('track_id', type=int)
    if track_id:
        query = query.filter_by(track_id=track_id)
    return jsonify({'rooms': [room_to_dict(r) for r in query.order_by(Room.name).all()]})


@admin_bp.route('/room/<int:room_id>/edit', methods=['POST'])
@admin_required
def edit_room(room_id):
    room = _get_or_404(Room, room_id, 'Комната не найдена.')
    data = _payload()
    room.name = (data.get('name') or room.name).strip()
    room.passcode = data.get('passcode', room.passcode) or None
    _commit('Комната с таким названием или кодом уже существует.')
    return jsonify(room_to_dict(room))


@admin_bp.route('/room/<int:room_id>/delete', methods=['POST'])
@admin_required
def delete_room(room_id):
    room = _get_or_404(Room, room_id, 'Комната не найдена.')
    if room.teams:
        raise JudgingError(f'Невозможно удалить комнату "{room.name}", в ней есть команды. '
                           'Сначала переведите или удалите команды.', status_code=409)
    db.session.delete(room)
    db.session.commit()
    return jsonify({'status': 'ok'})


@admin_bp.route('/rooms/<int:room_id>/lock', methods=['POST'])
@admin_required
def lock_room(room_id):
    locked = _payload().get('locked', True)
    if not isinstance(locked, bool):
        raise ValidationError('Поле locked должно быть true или false.')
    is_locked = ScoreStore().set_room_lock(room_id, locked)
    return jsonify({'room_id': room_id, 'is_locked': is_locked})


# --- БЛОК CRUD для Team ---
@admin_bp.route('/teams', methods=['GET', 'POST'])
@admin_required
def manage_teams():
    if request.method == 'POST':
        data = _payload()
        team = Team(name=(data.get('name') or '').strip(),
                    team_number=str(data.get('team_number') or '').strip(),
                    room_id=data.get('room_id'),
                    members=data.get('members') or [])
        if not team.name or not team.team_number or not team.room_id:
            raise ValidationError('Название, номер и комната команды являются обязательными полями.')
        # Трек команды всегда берется из комнаты
        room = _get_or_404(Room, team.room_id, 'Комната не найдена.')
        team.track_id = room.track_id
        db.session.add(team)
        _commit(f'Команда с номером {team.team_number} уже есть в этом треке.')
        return jsonify(team_to_dict(team)), 201

    query = Team.query
    for field in ('track_id', 'room_id'):
        value = request.args.get(field, type=int)
        if value:
            query = query.filter_by(**{field: value})
    return jsonify({'teams': [team_to_dict(t) for t in query.order_by(Team.track_id, Team.team_number).all()]})


@admin_bp.route('/team/<int:team_id>/edit', methods=['POST'])
@admin_required
def edit_team(team_id):
    team = _get_or_404(Team, team_id, 'Команда не найдена.')
    data = _payload()
    team.name = (data.get('name') or team.name).strip()
    team.team_number = str(data.get('team_number') or team.team_number).strip()
    team.members = data.get('members', team.members)
    if data.get('room_id') and data['room_id'] != team.room_id:
        room = _get_or_404(Room, data['room_id'], 'Комната не найдена.')
        if room.track_id != team.track_id and (team.scores or team.public_votes):
            raise ValidationError('Нельзя перевести оцененную команду в другой трек.')
        team.room_id = room.id
        team.track_id = room.track_id
    _commit('Команда с таким номером уже есть в этом треке.')
    return jsonify(team_to_dict(team))


@admin_bp.route('/team/<int:team_id>/delete', methods=['POST'])
@admin_required
def delete_team(team_id):
    team = _get_or_404(Team, team_id, 'Команда не найдена.')
    db.session.delete(team)
    db.session.commit()
    return jsonify({'status': 'ok'})


# --- БЛОК CRUD для Criterion ---
def _criterion_fields(data, criterion):
    criterion.name = (data.get('name') or criterion.name or '').strip()
    criterion.type = data.get('type', criterion.type) or 'text'
    if criterion.type not in CRITERION_TYPES:
        raise ValidationError('Тип критерия должен быть "text" или "dropdown".')
    if 'options' in data:
        criterion.options = data['options']
    if criterion.type == 'dropdown':
        options = criterion.options or []
        try:
            scores = [float(o['score']) for o in options]
        except (KeyError, TypeError, ValueError):
            raise ValidationError('Каждый вариант должен содержать label и числовой score.')
        if not scores:
            raise ValidationError('У критерия с выбором должен быть хотя бы один вариант.')
        # Максимум для выпадающего списка - наибольший вариант
        criterion.max_score = max(scores)
    elif 'max_score' in data:
        criterion.max_score = data['max_score']
    if 'weightage' in data:
        criterion.weightage = data['weightage']
    try:
        criterion.max_score = float(criterion.max_score)
        criterion.weightage = float(criterion.weightage)
    except (TypeError, ValueError):
        raise ValidationError('Максимальный балл и вес должны быть числами.')
    if criterion.max_score <= 0:
        raise ValidationError('Максимальный балл должен быть больше нуля.')
    if criterion.weightage < 0:
        raise ValidationError('Вес критерия не может быть отрицательным.')
    if not criterion.name:
        raise ValidationError('Название критерия является обязательным полем.')


@admin_bp.route('/criteria', methods=['GET', 'POST'])
@admin_required
def manage_criteria():
    if request.method == 'POST':
        data = _payload()
        track = _get_or_404(Track, data.get('track_id'), 'Трек не найден.')
        criterion = Criterion(track_id=track.id, max_score=10, weightage=1)
        _criterion_fields(data, criterion)

        # Автоматически определяем порядок для нового критерия
        max_order = db.session.query(func.max(Criterion.display_order)).filter(Criterion.track_id == track.id).scalar()
        criterion.display_order = (max_order or 0) + 1
        db.session.add(criterion)
        _commit('Не удалось сохранить критерий.')
        return jsonify(criterion_to_dict(criterion)), 201

    query = Criterion.query
    track_id = request.args.get('track_id', type=int)
    if track_id:
        query = query.filter_by(track_id=track_id)
    criteria = query.order_by(Criterion.track_id, Criterion.display_order).all()
    return jsonify({'criteria': [criterion_to_dict(c) for c in criteria]})


@admin_bp.route('/criterion/<int:criterion_id>/edit', methods=['POST'])
@admin_required
def edit_criterion(criterion_id):
    criterion = _get_or_404(Criterion, criterion_id, 'Критерий не найден.')
    _criterion_fields(_payload(), criterion)
    _commit('Не удалось сохранить критерий.')
    return jsonify(criterion_to_dict(criterion))


@admin_bp.route('/criterion/<int:criterion_id>/delete', methods=['POST'])
@admin_required
def delete_criterion(criterion_id):
    criterion_to_delete = _get_or_404(Criterion, criterion_id, 'Критерий не найден.')

    # Ищем, есть ли хоть одна оценка или голос, связанные с этим критерием.
    if Score.query.filter_by(criterion_id=criterion_id).first() or \
            PublicVote.query.filter_by(criterion_id=criterion_id).first():
        raise JudgingError(f'Невозможно удалить критерий "{criterion_to_delete.name}", так как по нему уже '
                           'выставлены оценки.', status_code=409)
    db.session.delete(criterion_to_delete)
    db.session.commit()
    return jsonify({'status': 'ok'})


# --- БЛОК CRUD для судей ---
@admin_bp.route('/judges', methods=['GET', 'POST'])
@admin_required
def manage_judges():
    if request.method == 'POST':
        data = _payload()
        code = str(data.get('code') or '').strip()
        role = data.get('role', 'judge')
        if not code or role not in ('judge', 'admin'):
            raise ValidationError('Код и роль являются обязательными полями.')
        user = User(code=code, full_name=data.get('full_name'), role=role)
        db.session.add(user)
        _commit(f'Ошибка! Пользователь с кодом {code} уже существует.')
        return jsonify(judge_to_dict(user)), 201

    users = User.query.order_by(User.role, User.full_name).all()
    return jsonify({'judges': [judge_to_dict(u) for u in users]})


@admin_bp.route('/judge/<int:user_id>/edit', methods=['POST'])
@admin_required
def edit_judge(user_id):
    user = _get_or_404(User, user_id, 'Судья не найден.')
    data = _payload()
    user.code = str(data.get('code') or user.code).strip()
    user.full_name = data.get('full_name', user.full_name)
    _commit('Пользователь с таким кодом уже существует.')
    return jsonify(judge_to_dict(user))


@admin_bp.route('/judge/<int:user_id>/delete', methods=['POST'])
@admin_required
def delete_judge(user_id):
    if user_id == session.get('user_id'):
        raise ValidationError('Вы не можете удалить свою собственную учетную запись.')
    user = _get_or_404(User, user_id, 'Судья не найден.')
    if Score.query.filter_by(judge_id=user_id).first():
        raise JudgingError('Нельзя удалить судью, который уже выставил оценки.', status_code=409)
    db.session.delete(user)
    db.session.commit()
    return jsonify({'status': 'ok'})


@admin_bp.route('/assignments', methods=['POST'])
@admin_required
def assign_judge():
    data = _payload()
    judge = _get_or_404(User, data.get('judge_id'), 'Судья не найден.')
    room = _get_or_404(Room, data.get('room_id'), 'Комната не найдена.')
    assignment = JudgeAssignment(judge_id=judge.id, room_id=room.id)
    db.session.add(assignment)
    _commit('Этот судья уже назначен в данную комнату.')
    return jsonify({'id': assignment.id, 'judge_id': judge.id, 'room_id': room.id}), 201


@admin_bp.route('/assignment/<int:assignment_id>/delete', methods=['POST'])
@admin_required
def delete_assignment(assignment_id):
    assignment = _get_or_404(JudgeAssignment, assignment_id, 'Назначение не найдено.')
    db.session.delete(assignment)
    db.session.commit()
    return jsonify({'status': 'ok'})


# --- БЛОК CRUD для заготовок комментариев ---
@admin_bp.route('/snippets', methods=['GET', 'POST'])
@admin_required
def manage_snippets():
    if request.method == 'POST':
        data = _payload()
        track = _get_or_404(Track, data.get('track_id'), 'Трек не найден.')
        shortcut = normalize_shortcut(data.get('shortcut'))
        full_text = (data.get('full_text') or '').strip()
        if len(shortcut) < 2 or not full_text:
            raise ValidationError('Заполните сокращение и полный текст.')
        snippet = QuickSnippet(track_id=track.id, shortcut=shortcut, full_text=full_text)
        db.session.add(snippet)
        db.session.commit()
        return jsonify(snippet.to_dict()), 201

    query = QuickSnippet.query.filter(QuickSnippet.judge_id.is_(None))
    track_id = request.args.get('track_id', type=int)
    if track_id:
        query = query.filter_by(track_id=track_id)
    return jsonify({'snippets': [s.to_dict() for s in query.order_by(QuickSnippet.created_at.desc(), QuickSnippet.id.desc()).all()]})


@admin_bp.route('/snippet/<int:snippet_id>/edit', methods=['POST'])
@admin_required
def edit_snippet(snippet_id):
    snippet = _get_or_404(QuickSnippet, snippet_id, 'Заготовка не найдена.')
    data = _payload()
    snippet.shortcut = normalize_shortcut(data.get('shortcut')) or snippet.shortcut
    snippet.full_text = (data.get('full_text') or snippet.full_text).strip()
    db.session.commit()
    return jsonify(snippet.to_dict())


@admin_bp.route('/snippet/<int:snippet_id>/delete', methods=['POST'])
@admin_required
def delete_snippet(snippet_id):
    snippet = _get_or_404(QuickSnippet, snippet_id, 'Заготовка не найдена.')
    db.session.delete(snippet)
    db.session.commit()
    return jsonify({'status': 'ok'})


# --- Итоги ---
@admin_bp.route('/overview')
@admin_required
def overview():
    return jsonify(event_overview(ScoreStore()))


@admin_bp.route('/tracks/<int:track_id>/finalize', methods=['POST'])
@admin_required
def finalize(track_id):
    _get_or_404(Track, track_id, 'Трек не найден.')
    ranked = finalize_track(ScoreStore(), track_id)
    return jsonify({'status': 'ok', 'track_id': track_id, 'teams': ranked})


@admin_bp.route('/tracks/<int:track_id>/winners')
@admin_required
def winners(track_id):
    track = _get_or_404(Track, track_id, 'Трек не найден.')
    limit = request.args.get('limit', 10, type=int)
    return jsonify({'track': track_to_dict(track), 'winners': winners_report(ScoreStore(), track_id, limit=limit)})


@admin_bp.route('/tracks/<int:track_id>/ties')
@admin_required
def ties(track_id):
    _get_or_404(Track, track_id, 'Трек не найден.')
    max_difference = request.args.get('max_difference', 5, type=float)
    return jsonify({'track_id': track_id, 'max_difference': max_difference,
                    'teams': find_close_teams(ScoreStore(), track_id, max_difference=max_difference)})


@admin_bp.route('/voting')
@admin_required
def voting():
    track_id = request.args.get('track_id', type=int)
    return jsonify(voting_analytics(ScoreStore(), track_id=track_id))

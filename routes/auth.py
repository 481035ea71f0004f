# routes/auth.py
# Маршруты для авторизации

from flask import Blueprint, request, session, jsonify
from models import User, Room, JudgeAssignment
from errors import PermissionDenied, ValidationError

auth_bp = Blueprint('auth', __name__)


def _payload():
    return request.get_json(silent=True) or request.form


@auth_bp.route('/login', methods=['POST'])
def login():
    user_code = _payload().get('code')
    if not user_code:
        raise ValidationError('Пожалуйста, введите ваш код.')

    # Ищем пользователя в базе данных по коду
    user = User.query.filter_by(code=str(user_code)).first()
    if not user:
        raise PermissionDenied('Неверный код доступа. Попробуйте еще раз.')

    session.clear()  # Очищаем старую сессию для безопасности
    session['user_id'] = user.id
    session['user_role'] = user.role
    session['judge_name'] = user.full_name
    return jsonify({'status': 'ok', 'user_id': user.id, 'role': user.role, 'name': user.full_name})


@auth_bp.route('/judge/enter', methods=['POST'])
def enter_room():
    """Вход судьи в комнату по коду комнаты. Судья без учетной записи указывает только имя."""
    data = _payload()
    passcode = data.get('passcode')
    judge_name = (data.get('judge_name') or '').strip()
    if not passcode:
        raise ValidationError('Введите код комнаты.')

    room = Room.query.filter_by(passcode=str(passcode)).first()
    if not room:
        raise PermissionDenied('Неверный код комнаты.')
    if room.is_locked:
        raise PermissionDenied('Комната запечатана, судейство завершено.')

    # Уже вошедший по коду судья с учетной записью остается собой
    if session.get('user_role') in ('judge', 'admin') and session.get('user_id'):
        is_assigned = JudgeAssignment.query.filter_by(judge_id=session['user_id'], room_id=room.id).first()
        if not is_assigned and session['user_role'] != 'admin':
            raise PermissionDenied('Вы не назначены судьей в эту комнату.')
        session['room_id'] = room.id
        return jsonify({'status': 'ok', 'room_id': room.id, 'judge_id': session['user_id']})

    if not judge_name:
        raise ValidationError('Укажите свое имя.')
    # Если имя совпадает с судьей, назначенным в эту комнату, привязываемся к его учетной записи
    judge = (User.query.join(JudgeAssignment, JudgeAssignment.judge_id == User.id)
             .filter(User.full_name == judge_name, User.role == 'judge', JudgeAssignment.room_id == room.id)
             .first())
    session.clear()
    session['user_role'] = 'judge'
    session['user_id'] = judge.id if judge else None
    session['judge_name'] = judge_name
    session['room_id'] = room.id
    return jsonify({'status': 'ok', 'room_id': room.id, 'judge_id': session['user_id']})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    # Удаляем данные пользователя из сессии
    session.clear()
    return jsonify({'status': 'ok'})

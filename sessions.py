# sessions.py
# Контекст текущего судьи и зрителя. Маршруты собирают его из flask.session и передают
# дальше явно, так что сервисы и хранилище не читают глобальное состояние.

import random
import string
import time
from collections import namedtuple

from errors import PermissionDenied

JudgeSession = namedtuple('JudgeSession', ['judge_id', 'judge_name', 'room_id', 'role'])
VoterSession = namedtuple('VoterSession', ['session_id'])

VOTER_SESSION_KEY = 'voting_session_id'


def judge_session_from(flask_session):
    """Контекст судьи из сессии; PermissionDenied, если судья не вошел."""
    role = flask_session.get('user_role')
    if role not in ('judge', 'admin'):
        raise PermissionDenied('Необходимо войти как судья.')
    judge_id = flask_session.get('user_id')
    judge_name = flask_session.get('judge_name')
    if judge_id is None and not judge_name:
        raise PermissionDenied('Необходимо указать имя судьи.')
    return JudgeSession(judge_id, judge_name, flask_session.get('room_id'), role)


def admin_session_from(flask_session):
    if flask_session.get('user_role') != 'admin':
        raise PermissionDenied('У вас нет прав для доступа к этой странице.')
    return JudgeSession(flask_session.get('user_id'), flask_session.get('judge_name'), None, 'admin')


def new_voter_session_id():
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


def voter_session_from(flask_session):
    # Идентификатор создается один раз и живет, пока жива cookie
    session_id = flask_session.get(VOTER_SESSION_KEY)
    if not session_id:
        session_id = new_voter_session_id()
        flask_session[VOTER_SESSION_KEY] = session_id
    return VoterSession(session_id)

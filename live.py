# live.py
# Живой лидерборд через Socket.IO. Изменения таблиц собираются на flush,
# после commit затронутые лидерборды пересчитываются в фоне и рассылаются в комнаты Socket.IO.

import logging
import threading
from collections import namedtuple

from sqlalchemy import event
from sqlalchemy.orm import Session

from errors import JudgingError, NotFound

logger = logging.getLogger(__name__)

ChangeEvent = namedtuple('ChangeEvent', ['table', 'op', 'row_id', 'team_id', 'room_id', 'track_id'])

TRACKED_TABLES = ('scores', 'public_votes', 'teams', 'rooms')

LEADERBOARD_EVENT = 'leaderboard_update'

_PENDING_KEY = 'pending_changes'


def _to_event(obj, op):
    table = getattr(obj, '__tablename__', None)
    if table not in TRACKED_TABLES:
        return None
    if table == 'teams':
        return ChangeEvent(table, op, obj.id, obj.id, obj.room_id, obj.track_id)
    if table == 'rooms':
        return ChangeEvent(table, op, obj.id, None, obj.id, obj.track_id)
    return ChangeEvent(table, op, obj.id, obj.team_id, None, None)


def scope_room(track_id=None, room_id=None):
    """Имя комнаты Socket.IO для лидерборда с данными фильтрами."""
    return f"leaderboard:{track_id or '*'}:{room_id or '*'}"


class RefreshGuard:
    """
    Защита от устаревших результатов: каждый пересчет получает номер, и результат
    применяется, только если за это время не начался более новый пересчет.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._issued = 0
        self.applied = 0
        self.current = None

    def begin(self):
        with self._lock:
            self._issued += 1
            return self._issued

    def commit(self, ticket, result):
        with self._lock:
            if ticket != self._issued:
                logger.debug("Пересчет #%d устарел (последний #%d), результат отброшен", ticket, self._issued)
                return False
            self.applied = ticket
            self.current = result
            return True


class LiveUpdates:
    def __init__(self):
        self.app = None
        self.socketio = None
        self._guards = {}
        self._watched = set()
        self._lock = threading.Lock()

    def init_app(self, app, socketio):
        self.app = app
        self.socketio = socketio
        # Слушатели вешаются на класс Session один раз на процесс
        if not event.contains(Session, 'after_flush', _collect_changes):
            event.listen(Session, 'after_flush', _collect_changes)
            event.listen(Session, 'after_commit', _publish_changes)
            event.listen(Session, 'after_rollback', _drop_changes)
        app.extensions['live_updates'] = self

    def watch(self, track_id=None, room_id=None):
        with self._lock:
            self._watched.add((track_id, room_id))
        return scope_room(track_id, room_id)

    def _guard(self, scope):
        with self._lock:
            return self._guards.setdefault(scope, RefreshGuard())

    def leaderboard_state(self, track_id=None, room_id=None):
        """Текущий лидерборд или явное 'недоступно' вместо нулей."""
        from logic import compute_leaderboard
        from store import ScoreStore
        state = {'track_id': track_id, 'room_id': room_id}
        try:
            state.update(status='ok', teams=compute_leaderboard(ScoreStore(), track_id=track_id, room_id=room_id))
        except JudgingError as e:
            logger.warning("Лидерборд недоступен: %s", e.message)
            state.update(e.to_dict())
        return state

    def affected_scopes(self, store, changes):
        scopes = set()
        for change in changes:
            track_id, room_id = change.track_id, change.room_id
            if change.team_id is not None and track_id is None:
                try:
                    team = store.get_team(change.team_id)
                except NotFound:
                    # Команда удалена в той же транзакции: ее лидерборды обновятся по событию teams
                    continue
                track_id, room_id = team['track_id'], team['room_id']
            scopes.update({(None, None), (track_id, None), (None, room_id), (track_id, room_id)})
        with self._lock:
            return scopes & self._watched

    def refresh(self, changes):
        """Пересчитывает и рассылает лидерборды, затронутые изменениями. Работает в своем контексте приложения."""
        from extensions import db
        from store import ScoreStore
        with self.app.app_context():
            try:
                for track_id, room_id in self.affected_scopes(ScoreStore(), changes):
                    guard = self._guard((track_id, room_id))
                    ticket = guard.begin()
                    state = self.leaderboard_state(track_id, room_id)
                    if guard.commit(ticket, state):
                        self.socketio.emit(LEADERBOARD_EVENT, state, to=scope_room(track_id, room_id))
            except JudgingError as e:
                logger.warning("Не удалось обновить живой лидерборд: %s", e.message)
            finally:
                db.session.remove()

    def schedule(self, changes):
        if self.app is None or not self.app.config.get('LIVE_UPDATES', True):
            return
        logger.debug("Изменения после commit: %d", len(changes))
        self.socketio.start_background_task(self.refresh, list(changes))


def _collect_changes(session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, [])
    for op, objects in (('insert', session.new), ('update', session.dirty), ('delete', session.deleted)):
        for obj in objects:
            change = _to_event(obj, op)
            if change is not None:
                pending.append(change)


def _publish_changes(session):
    changes = session.info.pop(_PENDING_KEY, [])
    if not changes:
        return
    from extensions import live_updates
    live_updates.schedule(changes)


def _drop_changes(session):
    session.info.pop(_PENDING_KEY, None)

# routes/live_events.py
# Socket.IO: подписка зрителей на живой лидерборд трека или комнаты

from flask_socketio import emit, join_room, leave_room
from errors import ValidationError
from extensions import socketio, live_updates
from live import LEADERBOARD_EVENT, scope_room


def _filters(data):
    data = data or {}
    try:
        return tuple(int(data[key]) if data.get(key) is not None else None for key in ('track_id', 'room_id'))
    except (TypeError, ValueError):
        raise ValidationError('Некорректный идентификатор трека или комнаты.')


@socketio.on('watch_leaderboard')
def watch_leaderboard(data=None):
    try:
        track_id, room_id = _filters(data)
    except ValidationError as e:
        return e.to_dict()
    join_room(live_updates.watch(track_id, room_id))
    # Новый зритель сразу получает текущее состояние
    emit(LEADERBOARD_EVENT, live_updates.leaderboard_state(track_id, room_id))
    return {'status': 'ok'}


@socketio.on('unwatch_leaderboard')
def unwatch_leaderboard(data=None):
    try:
        track_id, room_id = _filters(data)
    except ValidationError as e:
        return e.to_dict()
    leave_room(scope_room(track_id, room_id))
    return {'status': 'ok'}

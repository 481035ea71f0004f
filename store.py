# store.py
# Доступ к исходным строкам оценок и голосов. Все, что считается из них, живет в aggregation.py.

import logging
import math
from collections import defaultdict
from datetime import datetime
from functools import wraps

from sqlalchemy import func, distinct
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from errors import StoreUnavailable, RoomLocked, InvalidScore, NotFound, ValidationError
from models import Team, Room, Criterion, Score, PublicVote, JudgeAssignment, User, Track, NowPresenting

logger = logging.getLogger(__name__)


def _team_to_dict(team):
    return {
        'id': team.id,
        'name': team.name,
        'team_number': team.team_number,
        'track_id': team.track_id,
        'room_id': team.room_id,
        'members': team.members or [],
        'total_score': team.total_score,
    }


def _criterion_to_dict(criterion):
    return {
        'id': criterion.id,
        'name': criterion.name,
        'track_id': criterion.track_id,
        'type': criterion.type,
        'max_score': criterion.max_score,
        'weightage': criterion.weightage,
        'options': criterion.options,
    }


def _reading(what):
    """Декоратор: ошибка БД при чтении превращается в StoreUnavailable."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error("Не удалось прочитать %s: %s", what, e)
                raise StoreUnavailable(f'Не удалось загрузить {what}. Попробуйте позже.') from e
        return wrapper
    return decorator


class ScoreStore:
    def __init__(self, session=None):
        self.session = session or db.session

    # --- Чтение ---

    @_reading('команду')
    def get_team(self, team_id):
        team = self.session.get(Team, team_id)
        if team is None:
            raise NotFound('Команда не найдена.')
        return _team_to_dict(team)

    @_reading('команды')
    def fetch_teams(self, track_id=None, room_id=None):
        query = Team.query
        if track_id is not None:
            query = query.filter(Team.track_id == track_id)
        if room_id is not None:
            query = query.filter(Team.room_id == room_id)
        return [_team_to_dict(t) for t in query.order_by(Team.id).all()]

    @_reading('оценки')
    def fetch_scores(self, team_id):
        rows = Score.query.filter(Score.team_id == team_id).order_by(Score.id).all()
        return [s.to_row() for s in rows]

    @_reading('оценки')
    def fetch_scores_for_teams(self, team_ids):
        grouped = defaultdict(list)
        if not team_ids:
            return grouped
        for s in Score.query.filter(Score.team_id.in_(team_ids)).order_by(Score.id).all():
            grouped[s.team_id].append(s.to_row())
        return grouped

    @_reading('голоса')
    def fetch_votes(self, team_id):
        rows = PublicVote.query.filter(PublicVote.team_id == team_id).order_by(PublicVote.id).all()
        return [v.to_row() for v in rows]

    @_reading('голоса')
    def fetch_votes_for_teams(self, team_ids):
        grouped = defaultdict(list)
        if not team_ids:
            return grouped
        for v in PublicVote.query.filter(PublicVote.team_id.in_(team_ids)).order_by(PublicVote.id).all():
            grouped[v.team_id].append(v.to_row())
        return grouped

    @_reading('голоса')
    def fetch_recent_votes(self, team_ids, limit=10):
        if not team_ids:
            return []
        rows = (PublicVote.query.filter(PublicVote.team_id.in_(team_ids))
                .order_by(PublicVote.voted_at.desc(), PublicVote.id.desc())
                .limit(limit).all())
        return [v.to_row() for v in rows]

    @_reading('критерии')
    def fetch_criteria(self, track_id):
        rows = (Criterion.query.filter(Criterion.track_id == track_id)
                .order_by(Criterion.display_order, Criterion.id).all())
        return [_criterion_to_dict(c) for c in rows]

    @_reading('комнаты')
    def fetch_rooms(self, track_id=None):
        query = Room.query
        if track_id is not None:
            query = query.filter(Room.track_id == track_id)
        return [{'id': r.id, 'name': r.name, 'track_id': r.track_id, 'is_locked': r.is_locked}
                for r in query.order_by(Room.name).all()]

    @_reading('назначения судей')
    def count_assigned_judges(self, room_id):
        return JudgeAssignment.query.filter(JudgeAssignment.room_id == room_id).count()

    @_reading('оценки судьи')
    def fetch_judge_scores(self, judge_session, team_id=None):
        query = Score.query
        if judge_session.judge_id is not None:
            query = query.filter(Score.judge_id == judge_session.judge_id)
        else:
            query = query.filter(Score.judge_id.is_(None), Score.judge_name == judge_session.judge_name)
        if team_id is not None:
            query = query.filter(Score.team_id == team_id)
        return [s.to_row() for s in query.order_by(Score.team_id, Score.id).all()]

    @_reading('голоса')
    def has_voted(self, voter_session, team_id):
        return PublicVote.query.filter_by(team_id=team_id, session_id=voter_session.session_id).first() is not None

    @_reading('комнату')
    def get_room(self, room_id):
        room = self.session.get(Room, room_id)
        if room is None:
            raise NotFound('Комната не найдена.')
        return {'id': room.id, 'name': room.name, 'track_id': room.track_id, 'is_locked': room.is_locked}

    @_reading('выступающую команду')
    def fetch_now_presenting(self, room_id):
        row = self.session.get(NowPresenting, room_id)
        if row is None:
            return None
        return {'room_id': row.room_id, 'team_id': row.team_id, 'started_at': row.started_at}

    @_reading('сводку')
    def fetch_overview(self):
        return {
            'total_teams': Team.query.count(),
            'total_judges': User.query.filter_by(role='judge').count(),
            'total_tracks': Track.query.count(),
            'total_rooms': Room.query.count(),
            'locked_rooms': Room.query.filter_by(is_locked=True).count(),
            'assigned_judges': self.session.query(func.count(distinct(JudgeAssignment.judge_id))).scalar(),
        }

    # --- Запись ---

    def replace_judge_scores(self, judge_session, team_id, entries, comment=None):
        """
        Заменяет все оценки судьи по команде одной транзакцией.
        entries: {criterion_id: score}. Блокировка комнаты проверяется в той же транзакции,
        что и запись, поэтому запечатанная комната не примет оценку и при гонке с финализацией.
        """
        try:
            team = self.session.get(Team, team_id)
            if team is None:
                raise NotFound('Команда не найдена.')
            room = (self.session.query(Room).filter(Room.id == team.room_id)
                    .with_for_update().one())
            if room.is_locked:
                raise RoomLocked(f'Комната "{room.name}" запечатана, оценки больше не принимаются.')

            criteria = {c.id: c for c in Criterion.query.filter(Criterion.track_id == team.track_id)}
            rows = []
            for criterion_id, value in entries.items():
                criterion = criteria.get(criterion_id)
                if criterion is None:
                    raise InvalidScore(f'Критерий {criterion_id} не относится к треку команды.')
                rows.append(Score(
                    team_id=team.id,
                    judge_id=judge_session.judge_id,
                    judge_name=judge_session.judge_name,
                    criterion_id=criterion.id,
                    score=_validated_score(criterion, value),
                    comment=comment,
                ))

            existing = Score.query.filter(Score.team_id == team.id)
            if judge_session.judge_id is not None:
                existing = existing.filter(Score.judge_id == judge_session.judge_id)
            else:
                existing = existing.filter(Score.judge_id.is_(None), Score.judge_name == judge_session.judge_name)
            # Удаляем через ORM, чтобы удаление попало в ленту изменений
            for old in existing.all():
                self.session.delete(old)
            self.session.flush()
            self.session.add_all(rows)
            self.session.commit()
        except (NotFound, RoomLocked, InvalidScore):
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Не удалось сохранить оценки команды %s: %s", team_id, e)
            raise StoreUnavailable('Не удалось сохранить оценки. Введенные данные не потеряны, попробуйте еще раз.') from e

        logger.info("Судья %s сохранил %d оценок команды %s",
                    judge_session.judge_id or judge_session.judge_name, len(rows), team_id)
        return [r.to_row() for r in rows]

    def add_public_votes(self, voter_session, team_id, entries):
        """
        Добавляет голос зрителя по каждому критерию. Повторное голосование той же сессией
        не запрещено; возвращает True, если сессия уже голосовала за команду раньше.
        """
        try:
            team = self.session.get(Team, team_id)
            if team is None:
                raise NotFound('Команда не найдена.')
            criteria = {c.id: c for c in Criterion.query.filter(Criterion.track_id == team.track_id)}
            if not entries:
                raise InvalidScore('Оцените хотя бы один критерий.')
            voted_before = PublicVote.query.filter_by(
                team_id=team.id, session_id=voter_session.session_id).first() is not None
            for criterion_id, value in entries.items():
                criterion = criteria.get(criterion_id)
                if criterion is None:
                    raise InvalidScore(f'Критерий {criterion_id} не относится к треку команды.')
                self.session.add(PublicVote(
                    team_id=team.id,
                    criterion_id=criterion.id,
                    score=_validated_score(criterion, value, options=False),
                    session_id=voter_session.session_id,
                ))
            self.session.commit()
        except (NotFound, InvalidScore):
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Не удалось сохранить голос за команду %s: %s", team_id, e)
            raise StoreUnavailable('Не удалось сохранить голос. Попробуйте еще раз.') from e

        if voted_before:
            logger.info("Сессия %s повторно проголосовала за команду %s", voter_session.session_id, team_id)
        return voted_before

    def write_team_total_score(self, team_id, value, commit=True):
        team = self.session.get(Team, team_id)
        if team is None:
            raise NotFound('Команда не найдена.')
        team.total_score = round(value, 4)
        if commit:
            self.commit('итоговый балл')

    def lock_rooms_for_track(self, track_id, commit=True):
        rooms = Room.query.filter(Room.track_id == track_id).all()
        for room in rooms:
            room.is_locked = True
        if commit:
            self.commit('блокировку комнат')
        return len(rooms)

    def set_room_lock(self, room_id, locked):
        room = self.session.get(Room, room_id)
        if room is None:
            raise NotFound('Комната не найдена.')
        room.is_locked = bool(locked)
        self.commit('блокировку комнаты')
        logger.info("Комната %s %s", room.name, 'запечатана' if room.is_locked else 'открыта')
        return room.is_locked

    def set_now_presenting(self, room_id, team_id):
        """Отмечает команду, которая сейчас выступает в комнате; team_id=None снимает отметку."""
        room = self.session.get(Room, room_id)
        if room is None:
            raise NotFound('Комната не найдена.')
        if room.is_locked:
            raise RoomLocked(f'Комната "{room.name}" запечатана, судейство завершено.')
        current = self.session.get(NowPresenting, room_id)
        if team_id is None:
            if current is not None:
                self.session.delete(current)
        else:
            team = self.session.get(Team, team_id)
            if team is None:
                raise NotFound('Команда не найдена.')
            if team.room_id != room.id:
                raise ValidationError('Команда выступает в другой комнате.')
            if current is None:
                current = NowPresenting(room_id=room.id, team_id=team.id)
                self.session.add(current)
            elif current.team_id != team.id:
                current.team_id = team.id
                current.started_at = datetime.utcnow()
        self.commit('выступающую команду')
        logger.info("Комната %s: выступает команда %s", room.name, team_id)

    def commit(self, what):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Не удалось сохранить %s: %s", what, e)
            raise StoreUnavailable(f'Не удалось сохранить {what}.') from e


def _validated_score(criterion, value, options=True):
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise InvalidScore(f'Оценка по критерию "{criterion.name}" должна быть числом.')
    # NaN не ловится сравнениями ниже
    if not math.isfinite(score):
        raise InvalidScore(f'Оценка по критерию "{criterion.name}" должна быть числом.')
    allowed = criterion.allowed_scores() if options else None
    if allowed is not None:
        if score not in allowed:
            raise InvalidScore(f'Оценка по критерию "{criterion.name}" должна быть одним из вариантов.')
    elif score < 0 or score > criterion.max_score:
        raise InvalidScore(f'Оценка по критерию "{criterion.name}" должна быть от 0 до {criterion.max_score:g}.')
    return score

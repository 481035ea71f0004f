# tests/conftest.py
# Общие фикстуры: приложение на sqlite в памяти и небольшой хакатон

from types import SimpleNamespace

import pytest

from app import create_app
from config import TestConfig
from extensions import db
from models import User, Track, Room, Team, Criterion, JudgeAssignment
from sessions import JudgeSession, VoterSession
from store import ScoreStore


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return ScoreStore()


@pytest.fixture
def hackathon(app):
    """Трек с одной комнатой, двумя командами, двумя критериями и двумя назначенными судьями."""
    admin = User(code='000001', full_name='Организатор', role='admin')
    judge1 = User(code='200001', full_name='Анна Смирнова', role='judge')
    judge2 = User(code='200002', full_name='Игорь Петров', role='judge')
    db.session.add_all([admin, judge1, judge2])

    track = Track(name='AI/ML')
    other_track = Track(name='Web')
    db.session.add_all([track, other_track])
    db.session.commit()

    room = Room(name='Аудитория 101', track_id=track.id, passcode='AI101')
    other_room = Room(name='Аудитория 202', track_id=other_track.id, passcode='WEB202')
    db.session.add_all([room, other_room])
    db.session.commit()

    idea = Criterion(name='Идея', track_id=track.id, max_score=10, display_order=1)
    tech = Criterion(name='Реализация', track_id=track.id, max_score=10, display_order=2)
    foreign = Criterion(name='Польза', track_id=other_track.id, max_score=10, display_order=1)
    db.session.add_all([idea, tech, foreign])

    team1 = Team(name='Нейросеть и Ко', team_number='1', track_id=track.id, room_id=room.id)
    team2 = Team(name='Градиентный спуск', team_number='2', track_id=track.id, room_id=room.id)
    db.session.add_all([team1, team2])
    db.session.commit()

    db.session.add_all([
        JudgeAssignment(judge_id=judge1.id, room_id=room.id),
        JudgeAssignment(judge_id=judge2.id, room_id=room.id),
    ])
    db.session.commit()

    return SimpleNamespace(
        admin=admin, judge1=judge1, judge2=judge2,
        track=track, other_track=other_track, room=room, other_room=other_room,
        idea=idea, tech=tech, foreign=foreign, team1=team1, team2=team2,
    )


def judge_session(user, room):
    return JudgeSession(user.id, user.full_name, room.id, user.role)


def walk_up_session(name, room):
    return JudgeSession(None, name, room.id, 'judge')


def voter(session_id='session_1_test'):
    return VoterSession(session_id)


def login_as(client, user, room=None):
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
        sess['user_role'] = user.role
        sess['judge_name'] = user.full_name
        if room is not None:
            sess['room_id'] = room.id

# models/room.py

from extensions import db

class Room(db.Model):
    __tablename__ = 'rooms'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    track_id = db.Column(db.Integer, db.ForeignKey('tracks.id', ondelete='CASCADE'), nullable=False)
    # Код комнаты для судей без учетной записи
    passcode = db.Column(db.String(32), nullable=True, unique=True)
    # Запечатанная комната не принимает новые оценки
    is_locked = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    teams = db.relationship('Team', backref='room', lazy=True)
    judge_assignments = db.relationship('JudgeAssignment', backref='room', cascade="all, delete-orphan")
    presenting = db.relationship('NowPresenting', uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('track_id', 'name', name='unique_track_room_name'),
    )

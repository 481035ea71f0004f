# models/team.py

from extensions import db
from sqlalchemy import CheckConstraint

class Team(db.Model):
    __tablename__ = 'teams'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    # Строка, а не число: номера бывают вида "T-12"
    team_number = db.Column(db.String(20), nullable=False)
    track_id = db.Column(db.Integer, db.ForeignKey('tracks.id', ondelete='CASCADE'), nullable=False)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False)
    members = db.Column(db.JSON, nullable=True)
    # Заполняется только при финализации трека
    total_score = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    scores = db.relationship('Score', backref='team', lazy=True, cascade="all, delete-orphan")
    public_votes = db.relationship('PublicVote', backref='team', lazy=True, cascade="all, delete-orphan")
    presenting = db.relationship('NowPresenting', backref='team', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('track_id', 'team_number', name='unique_track_team_number'),
        CheckConstraint("total_score IS NULL OR total_score >= 0", name="check_total_score"),
    )

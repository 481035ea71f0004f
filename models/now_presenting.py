# models/now_presenting.py

from datetime import datetime
from extensions import db

class NowPresenting(db.Model):
    __tablename__ = 'now_presenting'
    # Одна выступающая команда на комнату
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id', ondelete='CASCADE'), primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

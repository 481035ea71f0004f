# models/track.py

from extensions import db

class Track(db.Model):
    __tablename__ = 'tracks'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    # Каскадное удаление на уровне ORM: вместе с треком уходят его комнаты, команды и критерии
    rooms = db.relationship('Room', backref='track', lazy=True, cascade="all, delete-orphan")
    teams = db.relationship('Team', backref='track', lazy=True, cascade="all, delete-orphan")
    criteria = db.relationship('Criterion', backref='track', lazy=True, cascade="all, delete-orphan",
                               order_by='Criterion.display_order')
    snippets = db.relationship('QuickSnippet', backref='track', lazy=True, cascade="all, delete-orphan")

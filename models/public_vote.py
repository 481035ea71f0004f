# models/public_vote.py

from datetime import datetime
from extensions import db
from sqlalchemy import CheckConstraint

class PublicVote(db.Model):
    __tablename__ = 'public_votes'
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False, index=True)
    criterion_id = db.Column(db.Integer, db.ForeignKey('criteria.id', ondelete='CASCADE'), nullable=False)
    score = db.Column(db.Float, nullable=False)
    # Ограничения уникальности (team, session, criterion) нет намеренно
    session_id = db.Column(db.String(64), nullable=False, index=True)
    voted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("score >= 0", name="check_vote_score"),
    )

    def to_row(self):
        return {
            'team_id': self.team_id,
            'session_id': self.session_id,
            'criterion_id': self.criterion_id,
            'score': self.score,
            'voted_at': self.voted_at,
        }

# models/score.py

from extensions import db
from sqlalchemy import CheckConstraint

class Score(db.Model):
    __tablename__ = 'scores'
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False, index=True)
    # judge_id пуст у судей, вошедших по коду комнаты; тогда судью определяет judge_name
    judge_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    judge_name = db.Column(db.String(100), nullable=True)
    criterion_id = db.Column(db.Integer, db.ForeignKey('criteria.id', ondelete='CASCADE'), nullable=False)
    score = db.Column(db.Float, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    judge = db.relationship('User')
    criterion = db.relationship('Criterion')

    __table_args__ = (
        db.UniqueConstraint('team_id', 'judge_id', 'criterion_id', name='unique_score'),
        CheckConstraint("score >= 0", name="check_score"),
    )

    def to_row(self):
        return {
            'team_id': self.team_id,
            'judge_id': self.judge_id,
            'judge_name': self.judge_name,
            'criterion_id': self.criterion_id,
            'score': self.score,
            'comment': self.comment,
            'updated_at': self.updated_at,
        }

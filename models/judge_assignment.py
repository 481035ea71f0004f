# models/judge_assignment.py

from extensions import db

class JudgeAssignment(db.Model):
    __tablename__ = 'judge_assignments'
    id = db.Column(db.Integer, primary_key=True)
    judge_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    __table_args__ = (
        db.UniqueConstraint('judge_id', 'room_id', name='unique_judge_room'),
    )

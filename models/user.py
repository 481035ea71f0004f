# models/user.py

from extensions import db
from sqlalchemy import CheckConstraint

class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(12), unique=True, nullable=False)
    full_name = db.Column(db.String(100), nullable=True, index=True)
    role = db.Column(db.String, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())

    assignments = db.relationship('JudgeAssignment', backref='judge', cascade="all, delete-orphan")
    snippets = db.relationship('QuickSnippet', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("role IN ('judge', 'admin')", name="check_role"),
    )

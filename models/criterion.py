# models/criterion.py

from extensions import db
from sqlalchemy import CheckConstraint

class Criterion(db.Model):
    __tablename__ = 'criteria'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, nullable=False)
    track_id = db.Column(db.Integer, db.ForeignKey('tracks.id', ondelete='CASCADE'), nullable=False)
    # 'text' - ручной ввод до max_score, 'dropdown' - выбор из options [{label, score}]
    type = db.Column(db.String(20), nullable=False, default='text')
    max_score = db.Column(db.Float, nullable=False, default=10)
    options = db.Column(db.JSON, nullable=True)
    weightage = db.Column(db.Float, nullable=False, default=1)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("type IN ('text', 'dropdown')", name="check_criterion_type"),
        CheckConstraint("max_score > 0", name="check_criterion_max_score"),
    )

    def allowed_scores(self):
        """Допустимые значения для dropdown-критерия, None для ручного ввода."""
        if self.type != 'dropdown':
            return None
        return {float(o['score']) for o in (self.options or [])}

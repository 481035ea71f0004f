# models/quick_snippet.py

from extensions import db

class QuickSnippet(db.Model):
    __tablename__ = 'quick_snippets'
    id = db.Column(db.Integer, primary_key=True)
    track_id = db.Column(db.Integer, db.ForeignKey('tracks.id', ondelete='CASCADE'), nullable=False)
    # Пустой judge_id - общая заготовка трека от организаторов
    judge_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=True)
    shortcut = db.Column(db.String(50), nullable=False)
    full_text = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.current_timestamp())
    updated_at = db.Column(db.DateTime, server_default=db.func.current_timestamp(),
                           onupdate=db.func.current_timestamp())

    def to_dict(self):
        return {
            'id': self.id,
            'track_id': self.track_id,
            'judge_id': self.judge_id,
            'shortcut': self.shortcut,
            'full_text': self.full_text,
        }


def normalize_shortcut(shortcut):
    # Сокращения всегда начинаются с ';', как их набирают в поле комментария
    shortcut = (shortcut or '').strip()
    if shortcut and not shortcut.startswith(';'):
        shortcut = ';' + shortcut
    return shortcut

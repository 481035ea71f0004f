# app.py
# Основной файл Flask-приложения с использованием паттерна Application Factory

import logging
import os

from flask import Flask, request, jsonify
from config import Config
from extensions import db, migrate, socketio, live_updates
from errors import JudgingError

# Важно импортировать модели здесь, чтобы Alembic (Migrate) мог их видеть
from models import User, Track, Room, Team, Criterion, JudgeAssignment, Score, PublicVote, QuickSnippet, NowPresenting  # noqa: F401
# Обработчики Socket.IO регистрируются до первого socketio.init_app
import routes.live_events  # noqa: F401,E402

logger = logging.getLogger(__name__)


def configure_logging(app):
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root.addHandler(handler)
    root.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
    logging.getLogger("werkzeug").setLevel(logging.INFO)


def create_app(config_class=Config):
    # Создаем экземпляр приложения
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///'):
        os.makedirs(os.path.join(app.config['BASE_DIR'], 'instance'), exist_ok=True)

    # --- Инициализируем расширения С ПРИЛОЖЕНИЕМ ---
    # Мы связываем объекты db и migrate с нашим конкретным экземпляром app
    db.init_app(app)
    migrate.init_app(app, db)
    socketio.init_app(app, async_mode=app.config['SOCKETIO_ASYNC_MODE'])
    live_updates.init_app(app, socketio)

    # --- Регистрируем наши Blueprints (маршруты) ---
    from routes.auth import auth_bp
    from routes.main import main_bp
    from routes.judge import judge_bp
    from routes.vote import vote_bp
    from routes.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(judge_bp)
    app.register_blueprint(vote_bp)
    app.register_blueprint(admin_bp)

    @app.errorhandler(JudgingError)
    def handle_judging_error(e):
        logger.warning("%s %s -> %d %s", request.method, request.path, e.status_code, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Не найдено.', 'status': 'error'}), 404

    @app.get('/health')
    def health():
        return {"ok": True}, 200

    with app.app_context():
        db.create_all()

    return app


if __name__ == '__main__':
    app = create_app()
    socketio.run(app, debug=True)

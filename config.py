# config.py
# Конфигурация приложения Flask

import os

class Config:
    # Абсолютный путь к базе данных
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        f'sqlite:///{os.path.join(BASE_DIR, "instance", "hackathon.db")}'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv('SECRET_KEY', 'your-secret-key-change-me')  # Замени на случайный ключ в продакшене

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    SOCKETIO_ASYNC_MODE = os.getenv('SOCKETIO_ASYNC_MODE', 'threading')
    # Фоновый пересчет и рассылка лидербордов после каждого commit
    LIVE_UPDATES = os.getenv('LIVE_UPDATES', '1') == '1'


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SECRET_KEY = 'test'
    LOG_LEVEL = 'DEBUG'
    # В тестах рассылка вызывается явно
    LIVE_UPDATES = False

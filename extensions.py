# extensions.py
# Файл для хранения экземпляров расширений Flask

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_socketio import SocketIO

from live import LiveUpdates

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO()
# Рассылка живых лидербордов после каждого commit
live_updates = LiveUpdates()

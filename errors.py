# errors.py
# Ошибки предметной области. Обработчик в app.py превращает их в JSON-ответы.


class JudgingError(Exception):
    """Базовая ошибка сервиса судейства."""

    status_code = 400
    state = 'error'

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message, 'status': self.state}


class StoreUnavailable(JudgingError):
    """Хранилище оценок недоступно (сеть, блокировка БД и т.п.)."""

    status_code = 503
    state = 'unavailable'


class AggregateUnavailable(JudgingError):
    """Часть исходных данных не получена: итог неизвестен, а не равен нулю."""

    status_code = 503
    state = 'unavailable'


class RoomLocked(JudgingError):
    status_code = 409


class ValidationError(JudgingError):
    """Некорректные входные данные запроса."""


class InvalidScore(ValidationError):
    pass


class NotFound(JudgingError):
    status_code = 404


class PermissionDenied(JudgingError):
    status_code = 403

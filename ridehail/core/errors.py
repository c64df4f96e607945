"""Иерархия доменных ошибок сервиса."""

from typing import Optional


class ServiceError(Exception):
    """Базовая ошибка. status_code используется адаптером запросов."""

    status_code = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    """Отсутствующие или некорректные входные данные."""

    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class InvalidTransitionError(ServiceError):
    """Переход статуса поездки, недопустимый для текущего состояния."""

    status_code = 409


class ConflictError(ServiceError):
    status_code = 409


class UpstreamError(ServiceError):
    """Сбой базы данных или внешнего сервиса."""

    status_code = 500

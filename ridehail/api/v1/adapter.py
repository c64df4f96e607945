"""
Единая обработка ошибок для эндпоинтов.

Маршрут разбирает JSON, валидирует его pydantic-схемой и вызывает
доменную функцию; здесь же доменные исключения превращаются в HTTP-ответы.
Классы маршрутов отличаются только форматом тела ошибки.
"""

import logging
from typing import Any, Callable, Coroutine

from fastapi import HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from ridehail.core.errors import ServiceError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_ERROR_CODE = "REQUEST_FAILED"


def describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Invalid request: " + "; ".join(parts)


def error_code(code: str) -> Callable:
    """Задает код ошибки эндпоинта для формата {success, error: {code, message}}."""
    def decorator(func: Callable) -> Callable:
        func.error_code = code
        return func
    return decorator


class JSONErrorRoute(APIRoute):
    """Ошибки в виде {"error": message} с кодом статуса из исключения."""

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_route_handler = super().get_route_handler()

        async def custom_route_handler(request: Request) -> Response:
            try:
                return await original_route_handler(request)
            except HTTPException:
                raise
            except RequestValidationError as exc:
                return self.error_response(ValidationError(describe_validation_error(exc)))
            except ServiceError as exc:
                if exc.status_code >= 500:
                    logger.error(f"{request.method} {request.url.path}: {exc.message}")
                return self.error_response(exc)
            except (SQLAlchemyError, RedisError):
                # Текст исходной ошибки клиенту не отдаем
                logger.exception(f"Ошибка хранилища при обработке {request.method} {request.url.path}")
                return self.error_response(UpstreamError("upstream_error"))
            except Exception:
                logger.exception(f"Необработанная ошибка в {request.method} {request.url.path}")
                return self.error_response(ServiceError("internal_error"))

        return custom_route_handler

    def error_response(self, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


class EnvelopeRoute(JSONErrorRoute):
    """
    Ошибки в виде {"success": false, "error": {"code", "message"}}.
    Любая ошибка, включая валидацию, отдается со статусом 500.
    """

    def error_response(self, exc: ServiceError) -> JSONResponse:
        code = getattr(self.endpoint, "error_code", DEFAULT_ERROR_CODE)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": {"code": code, "message": exc.message}},
        )

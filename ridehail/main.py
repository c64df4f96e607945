"""Главный файл приложения FastAPI."""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from ridehail.api.v1 import drivers as drivers_v1
from ridehail.api.v1 import notifications as notifications_v1
from ridehail.api.v1 import rides as rides_v1
from ridehail.api.v1 import users as users_v1
from ridehail.core.config import settings
from ridehail.core.db import engine
from ridehail.core.logging_config import request_id_var, setup_logging
from ridehail.core.redis import redis_pool
from ridehail.services.notification_service import redis_pubsub_listener

# Настраиваем логирование при старте
setup_logging()
logger = logging.getLogger("ridehail.main")

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
CORS_ALLOW_METHODS = "POST, GET, OPTIONS, PUT, DELETE, PATCH"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Контекстный менеджер для управления жизненным циклом приложения.
    Выполняется при старте и остановке приложения.
    """
    logger.info("Application startup...")

    # Слушатель Pub/Sub доставляет уведомления в WebSocket-соединения
    redis_client = aioredis.Redis(connection_pool=redis_pool)
    listener_task = asyncio.create_task(redis_pubsub_listener(redis_client))

    yield

    logger.info("Application shutdown...")
    listener_task.cancel()
    await listener_task

    await redis_pool.disconnect()
    await engine.dispose()
    logger.info("Redis pool and database engine disposed.")


app = FastAPI(
    title="Ride Hailing Service",
    description="Сервис заказа поездок: назначение водителей, трекинг, отмены",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def preflight_headers(origin: Optional[str]) -> Dict[str, str]:
    allowed = settings.BACKEND_CORS_ORIGINS
    if "*" in allowed:
        allow_origin = "*"
    elif origin and origin in allowed:
        allow_origin = origin
    else:
        allow_origin = allowed[0] if allowed else "null"
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        "Access-Control-Max-Age": "86400",
    }


# OPTIONS на любой путь отвечает 200 без тела, независимо от заголовков preflight
@app.middleware("http")
async def options_middleware(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=preflight_headers(request.headers.get("origin")))
    return await call_next(request)


# Middleware для установки request_id
@app.middleware("http")
async def add_request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


# Подключаем роутеры API
app.include_router(rides_v1.router, prefix="/api/v1")
app.include_router(drivers_v1.router, prefix="/api/v1")
app.include_router(users_v1.router, prefix="/api/v1")
app.include_router(notifications_v1.router, prefix="/api/v1")


@app.get("/healthcheck", tags=["Healthcheck"])
async def healthcheck():
    """Проверка доступности сервиса."""
    return {"status": "ok"}

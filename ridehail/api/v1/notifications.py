"""API эндпоинты для уведомлений: push через Pub/Sub и WebSocket."""

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from ridehail.schemas.notification import PushRequestSchema, PushResponseSchema
from ridehail.services.notification_service import notification_manager, publish_notification
from .adapter import JSONErrorRoute
from .dependencies import get_redis

router = APIRouter(prefix="/notifications", tags=["Notifications"], route_class=JSONErrorRoute)
logger = logging.getLogger(__name__)


@router.post("/push", response_model=PushResponseSchema)
async def send_push(
    payload: PushRequestSchema,
    redis_client: aioredis.Redis = Depends(get_redis),
):
    """Отправка push-уведомления пользователю."""
    subscribers = await publish_notification(
        redis_client,
        payload.user_id,
        "PUSH",
        {"title": payload.title or "Notification", "body": payload.body or ""},
    )
    return PushResponseSchema(subscribers=subscribers)


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    user_id: str = Query(..., min_length=1, description="ID пользователя"),
):
    """
    Основной эндпоинт для WebSocket-соединений.

    Клиент должен подключаться по адресу:
    ws://<host>/api/v1/notifications/ws?user_id=<id>

    Принимает соединение и держит его открытым, пока клиент не отключится.
    """
    await notification_manager.connect(user_id, websocket)
    try:
        while True:
            data = await websocket.receive_text()
            logger.debug(f"Получено сообщение от пользователя {user_id}: {data}")
            if data == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        logger.info(f"Клиент {user_id} отключился.")
    finally:
        notification_manager.disconnect(user_id)

"""
Уведомления пользователей: публикация в Redis Pub/Sub и доставка
через WebSocket-соединения, открытые на этом экземпляре приложения.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect
from redis.asyncio import Redis

logger = logging.getLogger(__name__)

NOTIFICATION_CHANNEL = "user_notifications"


class NotificationManager:
    """Хранит активные WebSocket-соединения по ID пользователя."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections[user_id] = websocket
        logger.info(f"Пользователь {user_id} подключился к уведомлениям.")

    def disconnect(self, user_id: str) -> None:
        self.active_connections.pop(user_id, None)

    async def send_personal_message(self, user_id: str, message: Dict[str, Any]) -> bool:
        """
        Отправляет сообщение пользователю, если он подключен к этому экземпляру.

        Returns:
            True, если сообщение отправлено.
        """
        websocket = self.active_connections.get(user_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as e:
            # Соединение закрыто, но еще не удалено из менеджера
            logger.warning(f"Не удалось отправить сообщение пользователю {user_id}: {e}")
            self.disconnect(user_id)
            return False
        return True


notification_manager = NotificationManager()


async def publish_notification(
    redis: Redis,
    recipient_user_id: str,
    event_type: str,
    data: Optional[Dict[str, Any]] = None,
) -> int:
    """
    Публикует уведомление в канал Pub/Sub.

    Returns:
        Количество подписчиков, получивших сообщение.
    """
    payload = {
        "type": event_type,
        "recipient_user_id": recipient_user_id,
        "data": data or {},
    }
    receivers = await redis.publish(NOTIFICATION_CHANNEL, json.dumps(payload))
    logger.info(f"Уведомление {event_type} для {recipient_user_id} опубликовано, подписчиков: {receivers}")
    return receivers


async def dispatch_notification(raw: str, manager: NotificationManager = notification_manager) -> bool:
    """Разбирает сообщение из канала и отправляет его адресату."""
    try:
        payload = json.loads(raw)
        recipient_id = str(payload["recipient_user_id"])
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        logger.error(f"Не удалось обработать сообщение из Pub/Sub: {e}")
        return False

    message_to_send = {
        "type": payload.get("type"),
        "data": payload.get("data"),
    }
    return await manager.send_personal_message(recipient_id, message_to_send)


async def redis_pubsub_listener(redis: Redis) -> None:
    """Слушает канал Redis и отправляет уведомления через WebSocket."""
    pubsub = redis.pubsub()
    await pubsub.subscribe(NOTIFICATION_CHANNEL)
    logger.info(f"Подписка на Redis канал '{NOTIFICATION_CHANNEL}' установлена.")

    try:
        while True:
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if message and message["type"] == "message":
                await dispatch_notification(message["data"])
            await asyncio.sleep(0.01)
    except asyncio.CancelledError:
        logger.info("Слушатель Pub/Sub остановлен.")
    finally:
        await pubsub.close()
        logger.info("Подписка на Redis Pub/Sub закрыта.")

"""
Запуск второстепенных операций (трек, аудит, уведомления) в фоне.
Ошибки таких операций логируются и не доходят до клиента.
"""

import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


async def run_best_effort(
    name: str, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any
) -> None:
    try:
        await func(*args, **kwargs)
    except Exception as e:
        logger.warning(f"Фоновая операция '{name}' завершилась ошибкой: {e}", exc_info=True)

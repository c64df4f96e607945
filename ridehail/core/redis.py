"""Общий пул соединений с Redis."""

import redis.asyncio as aioredis

from ridehail.core.config import settings

# Пул создается лениво: соединения открываются при первом запросе
redis_pool = aioredis.ConnectionPool.from_url(settings.redis_url, decode_responses=True)

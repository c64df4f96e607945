"""Модуль с общими зависимостями для API."""

from typing import AsyncGenerator

import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridehail.core.db import async_session_maker
from ridehail.core.redis import redis_pool
from ridehail.services.geo import DriverGeoIndex


def get_session_factory() -> async_sessionmaker:
    """Фабрика сессий. В тестах подменяется на сессии к SQLite."""
    return async_session_maker


async def get_session(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    # Незафиксированная транзакция откатывается при закрытии сессии
    async with session_factory() as session:
        yield session


def get_redis() -> aioredis.Redis:
    return aioredis.Redis(connection_pool=redis_pool)


def get_geo_index(redis: aioredis.Redis = Depends(get_redis)) -> DriverGeoIndex:
    return DriverGeoIndex(redis)

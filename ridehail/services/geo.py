"""
Гео-индекс водителей на Redis GEO и геометрические утилиты.

Индекс хранит последние координаты водителей и отвечает на вопрос
"кто ближе всего к точке подачи". Статус водителя индекс не знает,
фильтрация по online выполняется по базе.
"""

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ridehail.core.errors import UpstreamError

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Расстояние по большой окружности в километрах."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def path_distance_km(points: Iterable[Tuple[float, float]]) -> float:
    """Длина ломаной по последовательности точек (lat, lng)."""
    total = 0.0
    previous: Optional[Tuple[float, float]] = None
    for point in points:
        if previous is not None:
            total += haversine_km(previous[0], previous[1], point[0], point[1])
        previous = point
    return total


class DriverGeoIndex:
    """Обертка над GEO-множеством Redis с позициями водителей."""

    KEY = "driver_locations"

    def __init__(self, redis: Redis):
        self.redis = redis

    async def upsert(self, driver_id: str, lat: float, lng: float) -> None:
        try:
            # GEOADD ожидает порядок долгота, широта
            await self.redis.geoadd(self.KEY, (lng, lat, driver_id))
        except RedisError as e:
            logger.error(f"Не удалось обновить гео-индекс для водителя {driver_id}: {e}")
            raise UpstreamError("geo index update failed") from e

    async def remove(self, driver_id: str) -> None:
        try:
            await self.redis.zrem(self.KEY, driver_id)
        except RedisError as e:
            raise UpstreamError("geo index update failed") from e

    async def nearby(
        self, lat: float, lng: float, radius_km: float, count: int
    ) -> List[Tuple[str, float]]:
        """
        Возвращает водителей в радиусе radius_km, отсортированных по расстоянию.

        Returns:
            Список пар (driver_id, distance_km).
        """
        try:
            results: Sequence = await self.redis.geosearch(
                self.KEY,
                longitude=lng,
                latitude=lat,
                radius=radius_km,
                unit="km",
                sort="ASC",
                count=count,
                withdist=True,
            )
        except RedisError as e:
            logger.error(f"Ошибка поиска в гео-индексе из точки ({lat}, {lng}): {e}")
            raise UpstreamError("geo index query failed") from e

        candidates = []
        for member, distance in results:
            if isinstance(member, bytes):
                member = member.decode()
            candidates.append((member, float(distance)))
        return candidates

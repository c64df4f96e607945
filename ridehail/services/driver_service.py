"""Обновление местоположения и статуса водителя."""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridehail.core.db import utcnow
from ridehail.core.errors import ConflictError, NotFoundError, ValidationError
from ridehail.models import Driver, DriverStatus, OpsEvent, Ride, RideLocation
from ridehail.models.ride import ACTIVE_STATUSES
from ridehail.services.geo import DriverGeoIndex

logger = logging.getLogger(__name__)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


async def _get_driver_for_update(session: AsyncSession, driver_id: str) -> Driver:
    stmt = select(Driver).where(Driver.id == driver_id).with_for_update()
    driver = (await session.execute(stmt)).scalar_one_or_none()
    if driver is None:
        raise NotFoundError(f"Driver {driver_id} not found")
    return driver


async def update_location(
    session: AsyncSession, geo: DriverGeoIndex, driver_id: str, lat: float, lng: float
) -> Driver:
    """
    Сохраняет текущие координаты водителя и обновляет гео-индекс.
    Ошибка гео-индекса откатывает и запись в базе, а при ошибке фиксации
    в индекс возвращается прежняя позиция.
    """
    if not driver_id or not _is_number(lat) or not _is_number(lng):
        raise ValidationError("Missing driver_id or lat/lng")

    driver = await _get_driver_for_update(session, driver_id)
    previous_lat, previous_lng = driver.current_lat, driver.current_lng
    driver.current_lat = lat
    driver.current_lng = lng
    driver.last_seen_at = utcnow()
    await session.flush()

    await geo.upsert(driver_id, lat, lng)
    try:
        await session.commit()
    except SQLAlchemyError:
        logger.error(f"Не удалось сохранить позицию водителя {driver_id}, гео-индекс откатывается")
        if previous_lat is not None and previous_lng is not None:
            await geo.upsert(driver_id, previous_lat, previous_lng)
        else:
            await geo.remove(driver_id)
        raise
    return driver


async def track_active_ride(
    session_factory: async_sessionmaker, driver_id: str, lat: float, lng: float
) -> Optional[str]:
    """
    Добавляет точку в трек активной поездки водителя и событие в журнал.
    Выполняется в фоне, в отдельной сессии.

    Returns:
        ID поездки, если у водителя есть активная поездка.
    """
    async with session_factory() as session:
        stmt = (
            select(Ride.id)
            .where(Ride.driver_id == driver_id, Ride.status.in_(ACTIVE_STATUSES))
            .order_by(Ride.created_at.desc())
            .limit(1)
        )
        ride_id = (await session.execute(stmt)).scalar_one_or_none()
        if ride_id is None:
            return None

        session.add(RideLocation(ride_id=ride_id, lat=lat, lng=lng, recorded_at=utcnow()))
        session.add(OpsEvent(
            event_type="driver_location",
            ref_id=driver_id,
            message="Driver GPS update",
            payload={"lat": lat, "lng": lng, "ride_id": ride_id},
        ))
        await session.commit()
        return ride_id


async def count_active_rides(session: AsyncSession, driver_id: str) -> int:
    stmt = (
        select(func.count())
        .select_from(Ride)
        .where(Ride.driver_id == driver_id, Ride.status.in_(ACTIVE_STATUSES))
    )
    return (await session.execute(stmt)).scalar_one()


async def set_driver_status(
    session: AsyncSession,
    geo: DriverGeoIndex,
    driver_id: str,
    status: DriverStatus,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
) -> Driver:
    """
    Меняет статус водителя вручную (выход на линию, уход с линии).
    Пока есть незавершенная поездка, сменить статус на offline или online нельзя.
    """
    driver = await _get_driver_for_update(session, driver_id)

    leaving_ride = status in (DriverStatus.OFFLINE, DriverStatus.ONLINE)
    if leaving_ride and await count_active_rides(session, driver_id) > 0:
        raise ConflictError(f"Cannot go {status.value} with an active ride")

    driver.status = status.value
    driver.last_seen_at = utcnow()
    if lat is not None and lng is not None:
        driver.current_lat = lat
        driver.current_lng = lng
    await session.flush()

    if status == DriverStatus.OFFLINE:
        await geo.remove(driver_id)
    elif lat is not None and lng is not None:
        await geo.upsert(driver_id, lat, lng)

    await session.commit()
    logger.info(f"Статус водителя {driver_id} изменен на {status.value}")
    return driver

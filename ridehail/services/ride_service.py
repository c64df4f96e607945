"""
Переходы жизненного цикла поездки: заказ, назначение водителя, принятие,
старт, завершение и отмена.

Каждая операция выполняется в одной транзакции: изменения поездки,
водителя, штрафов и журнала аудита фиксируются вместе или не фиксируются вовсе.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.core.config import settings
from ridehail.core.db import as_utc, utcnow
from ridehail.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from ridehail.models import Driver, DriverStatus, OpsEvent, Penalty, Ride, RideLocation, RideStatus
from ridehail.models.ride import ACTIVE_STATUSES, can_transition
from ridehail.services.geo import DriverGeoIndex, path_distance_km
from ridehail.services.pricing import calculate_fare

logger = logging.getLogger(__name__)

PENALTY_CANCEL_AFTER_ACCEPT = "passenger_cancel_after_accept"
PENALTY_CANCEL = "cancel"


@dataclass(frozen=True)
class NearestDriver:
    driver_id: str
    name: Optional[str]
    car_plate: Optional[str]
    distance_km: float


async def get_ride(session: AsyncSession, ride_id: str, *, for_update: bool = False) -> Ride:
    stmt = select(Ride).where(Ride.id == ride_id)
    if for_update:
        stmt = stmt.with_for_update()
    ride = (await session.execute(stmt)).scalar_one_or_none()
    if ride is None:
        raise NotFoundError(f"Ride {ride_id} not found")
    return ride


async def _get_driver(session: AsyncSession, driver_id: str) -> Optional[Driver]:
    stmt = select(Driver).where(Driver.id == driver_id).with_for_update()
    return (await session.execute(stmt)).scalar_one_or_none()


async def _set_driver_status(session: AsyncSession, driver_id: Optional[str], status: DriverStatus) -> None:
    if not driver_id:
        return
    driver = await _get_driver(session, driver_id)
    if driver is None:
        logger.warning(f"Водитель {driver_id} не найден, статус {status.value} не установлен")
        return
    driver.status = status.value


def _transition(ride: Ride, target: RideStatus) -> str:
    """Проверяет переход и возвращает предыдущий статус."""
    previous = ride.status
    if not can_transition(previous, target.value):
        raise InvalidTransitionError(
            f"Cannot move ride {ride.id} from '{previous}' to '{target.value}'"
        )
    ride.status = target.value
    return previous


async def request_ride(
    session: AsyncSession,
    passenger_id: str,
    pickup_lat: Optional[float],
    pickup_lng: Optional[float],
    dropoff_lat: Optional[float] = None,
    dropoff_lng: Optional[float] = None,
) -> Ride:
    """Создает поездку в статусе waiting_assignment. Водители не затрагиваются."""
    if not passenger_id or pickup_lat is None or pickup_lng is None:
        raise ValidationError("Missing passenger_id or origin {lat,lng}")

    ride = Ride(
        passenger_id=passenger_id,
        status=RideStatus.WAITING_ASSIGNMENT.value,
        pickup_lat=pickup_lat,
        pickup_lng=pickup_lng,
        dropoff_lat=dropoff_lat,
        dropoff_lng=dropoff_lng,
        assignment_attempts=0,
        created_at=utcnow(),
    )
    session.add(ride)
    await session.commit()
    logger.info(f"Создана поездка {ride.id} для пассажира {passenger_id}")
    return ride


async def find_nearest_online_driver(
    session: AsyncSession, geo: DriverGeoIndex, lat: float, lng: float
) -> Optional[Tuple[Driver, NearestDriver]]:
    """
    Ищет ближайшего водителя в статусе online.

    Гео-индекс отдает кандидатов по возрастанию расстояния, из них берется
    первый, кто в базе отмечен как online и не имеет активной поездки.
    Занятые водители тоже лежат в индексе, поэтому выборка расширяется
    порциями, пока не найдется свободный или не закончится радиус.
    Строки водителей блокируются, занятые другой транзакцией пропускаются.
    """
    count = settings.NEAREST_DRIVER_CANDIDATES
    seen = 0
    while True:
        candidates = await geo.nearby(lat, lng, settings.NEAREST_DRIVER_RADIUS_KM, count)
        found = await _first_available_driver(session, candidates[seen:])
        if found is not None:
            return found
        if len(candidates) < count:
            return None
        seen = len(candidates)
        count *= 2


async def _first_available_driver(
    session: AsyncSession, candidates: List[Tuple[str, float]]
) -> Optional[Tuple[Driver, NearestDriver]]:
    if not candidates:
        return None

    has_active_ride = (
        select(Ride.id)
        .where(Ride.driver_id == Driver.id, Ride.status.in_(ACTIVE_STATUSES))
        .exists()
    )
    stmt = (
        select(Driver)
        .where(
            Driver.id.in_([driver_id for driver_id, _ in candidates]),
            Driver.status == DriverStatus.ONLINE.value,
            ~has_active_ride,
        )
        .with_for_update(skip_locked=True)
    )
    available = {driver.id: driver for driver in (await session.execute(stmt)).scalars()}

    for driver_id, distance_km in candidates:
        driver = available.get(driver_id)
        if driver is not None:
            return driver, NearestDriver(
                driver_id=driver.id,
                name=driver.name,
                car_plate=driver.car_plate,
                distance_km=round(distance_km, 3),
            )
    return None


async def assign_driver(
    session: AsyncSession, geo: DriverGeoIndex, ride_id: str
) -> Optional[Tuple[Ride, NearestDriver]]:
    """
    Назначает на поездку ближайшего свободного водителя.

    Returns:
        (поездка, водитель) или None, если свободных водителей нет.
        В последнем случае поездка не меняется.
    """
    ride = await get_ride(session, ride_id, for_update=True)
    if ride.pickup_lat is None or ride.pickup_lng is None:
        raise NotFoundError(f"Ride {ride_id} has no pickup coordinates")
    if ride.status != RideStatus.WAITING_ASSIGNMENT.value:
        raise InvalidTransitionError(
            f"Cannot assign a driver to ride {ride_id} in status '{ride.status}'"
        )

    found = await find_nearest_online_driver(session, geo, ride.pickup_lat, ride.pickup_lng)
    if found is None:
        logger.warning(f"Свободные водители для поездки {ride_id} не найдены")
        return None
    driver, nearest = found

    now = utcnow()
    _transition(ride, RideStatus.ASSIGNED)
    ride.driver_id = driver.id
    ride.assignment_attempts = (ride.assignment_attempts or 0) + 1
    ride.assigned_at = now
    ride.last_assignment_at = now

    driver.status = DriverStatus.BUSY.value

    session.add(OpsEvent(
        event_type="assign_driver",
        ref_id=ride.id,
        message="Assigned nearest driver",
        payload={"assigned_driver": asdict(nearest)},
    ))
    await session.commit()
    logger.info(f"Водитель {driver.id} назначен на поездку {ride.id} ({nearest.distance_km} км)")
    return ride, nearest


async def accept_ride(session: AsyncSession, ride_id: str, driver_id: str) -> Ride:
    """Водитель подтверждает назначенную ему поездку."""
    ride = await get_ride(session, ride_id, for_update=True)
    if ride.status != RideStatus.ASSIGNED.value:
        raise InvalidTransitionError(
            f"Cannot move ride {ride_id} from '{ride.status}' to '{RideStatus.ACCEPTED.value}'"
        )
    if ride.driver_id != driver_id:
        raise ValidationError("Driver mismatch for this ride")

    _transition(ride, RideStatus.ACCEPTED)
    ride.accepted_at = utcnow()
    await session.commit()
    return ride


async def start_ride(session: AsyncSession, ride_id: str) -> Ride:
    ride = await get_ride(session, ride_id, for_update=True)
    _transition(ride, RideStatus.IN_PROGRESS)
    ride.started_at = utcnow()

    # Водитель и так должен быть busy, но статус мог быть сброшен вручную
    await _set_driver_status(session, ride.driver_id, DriverStatus.BUSY)
    await session.commit()
    logger.info(f"Поездка {ride_id} начата")
    return ride


async def finish_ride(
    session: AsyncSession,
    ride_id: str,
    dropoff_lat: Optional[float] = None,
    dropoff_lng: Optional[float] = None,
) -> Ride:
    """
    Завершает поездку: считает расстояние по треку, длительность и стоимость,
    освобождает водителя.
    """
    ride = await get_ride(session, ride_id, for_update=True)
    _transition(ride, RideStatus.COMPLETED)
    now = utcnow()

    stmt = (
        select(RideLocation.lat, RideLocation.lng)
        .where(RideLocation.ride_id == ride_id)
        .order_by(RideLocation.recorded_at, RideLocation.id)
    )
    points = [(lat, lng) for lat, lng in (await session.execute(stmt)).all()]
    distance_km = round(path_distance_km(points), 3)

    started_at = as_utc(ride.started_at)
    minutes = max(0, round((now - started_at).total_seconds() / 60)) if started_at else 0

    fare = calculate_fare(distance_km, minutes)

    if dropoff_lat is not None and dropoff_lng is not None:
        ride.dropoff_lat = dropoff_lat
        ride.dropoff_lng = dropoff_lng
    ride.finished_at = now
    ride.distance_km = distance_km
    ride.duration_minutes = minutes
    ride.final_price_cents = fare.final_price_cents

    await _set_driver_status(session, ride.driver_id, DriverStatus.ONLINE)
    await session.commit()
    logger.info(
        f"Поездка {ride_id} завершена: {distance_km} км, {minutes} мин, "
        f"{fare.final_price_cents} центов"
    )
    return ride


async def cancel_ride(session: AsyncSession, ride_id: str, reason: Optional[str] = None) -> Ride:
    """
    Отменяет поездку и освобождает водителя.

    Отмена после принятия водителем штрафуется фиксированной суммой,
    прочие отмены с указанной причиной записываются без суммы.
    """
    ride = await get_ride(session, ride_id, for_update=True)
    previous = _transition(ride, RideStatus.CANCELED)
    ride.canceled_at = utcnow()

    await _set_driver_status(session, ride.driver_id, DriverStatus.ONLINE)

    if previous == RideStatus.ACCEPTED.value:
        session.add(Penalty(
            ride_id=ride.id,
            passenger_id=ride.passenger_id,
            driver_id=ride.driver_id,
            type=PENALTY_CANCEL_AFTER_ACCEPT,
            amount_cents=settings.CANCEL_PENALTY_CENTS,
            reason=reason or PENALTY_CANCEL_AFTER_ACCEPT,
            applied=True,
        ))
    elif reason:
        session.add(Penalty(
            ride_id=ride.id,
            passenger_id=ride.passenger_id,
            driver_id=ride.driver_id,
            type=PENALTY_CANCEL,
            amount_cents=0,
            reason=reason,
            applied=False,
        ))

    await session.commit()
    logger.info(f"Поездка {ride_id} отменена (предыдущий статус: {previous})")
    return ride


async def list_rides(
    session: AsyncSession,
    passenger_id: Optional[str] = None,
    driver_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[List[Ride], Dict[str, Any]]:
    """
    История поездок пассажира или водителя, новые первыми, со статистикой.

    Заработок считается по завершенным поездкам, раздел today ограничен
    поездками, созданными в текущие сутки UTC.
    """
    if bool(passenger_id) == bool(driver_id):
        raise ValidationError("Exactly one of passenger_id or driver_id is required")

    stmt = select(Ride).order_by(Ride.created_at.desc(), Ride.id)
    if passenger_id:
        stmt = stmt.where(Ride.passenger_id == passenger_id)
    else:
        stmt = stmt.where(Ride.driver_id == driver_id)
    rides = list((await session.execute(stmt)).scalars())

    today = (now or utcnow()).date()
    todays = [ride for ride in rides if as_utc(ride.created_at).date() == today]

    stats = {
        "total": len(rides),
        "by_status": {
            status.value: sum(1 for ride in rides if ride.status == status.value)
            for status in RideStatus
        },
        "earnings_cents": _earnings(rides),
        "today": {
            "total": len(todays),
            "completed": sum(1 for ride in todays if ride.status == RideStatus.COMPLETED.value),
            "earnings_cents": _earnings(todays),
        },
    }
    return rides, stats


def _earnings(rides: List[Ride]) -> int:
    return sum(
        ride.final_price_cents or 0
        for ride in rides
        if ride.status == RideStatus.COMPLETED.value
    )

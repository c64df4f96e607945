"""API эндпоинты жизненного цикла поездки."""

from dataclasses import asdict
from typing import Optional, Union

import redis.asyncio as aioredis
from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.schemas.ride import (
    AssignmentSchema,
    FareEstimateRequestSchema,
    FareEstimateSchema,
    NearestDriverSchema,
    NoDriverSchema,
    RideAcceptSchema,
    RideActionSchema,
    RideCancelSchema,
    RideCreatedSchema,
    RideFinishSchema,
    RideHistorySchema,
    RideIdSchema,
    RideRequestSchema,
    RideSchema,
    RideStatsSchema,
)
from ridehail.services import ride_service
from ridehail.services.best_effort import run_best_effort
from ridehail.services.geo import DriverGeoIndex
from ridehail.services.notification_service import publish_notification
from ridehail.services.pricing import calculate_fare
from .adapter import JSONErrorRoute
from .dependencies import get_geo_index, get_redis, get_session

router = APIRouter(prefix="/rides", tags=["Rides"], route_class=JSONErrorRoute)


@router.post("/request", response_model=RideCreatedSchema)
async def request_ride(
    payload: RideRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Создание заказа в статусе waiting_assignment."""
    destination = payload.destination
    ride = await ride_service.request_ride(
        session,
        passenger_id=payload.passenger_id,
        pickup_lat=payload.origin.lat,
        pickup_lng=payload.origin.lng,
        dropoff_lat=destination.lat if destination else None,
        dropoff_lng=destination.lng if destination else None,
    )
    return RideCreatedSchema(ride_id=ride.id)


@router.post("/assign", response_model=Union[AssignmentSchema, NoDriverSchema])
async def assign_driver(
    payload: RideIdSchema,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    geo: DriverGeoIndex = Depends(get_geo_index),
    redis_client: aioredis.Redis = Depends(get_redis),
):
    """
    Назначение ближайшего свободного водителя.
    Отсутствие водителей - не ошибка: ответ 200 с error=no_driver_available.
    """
    result = await ride_service.assign_driver(session, geo, payload.ride_id)
    if result is None:
        return NoDriverSchema()

    ride, nearest = result
    background_tasks.add_task(
        run_best_effort,
        "notify_driver_assigned",
        publish_notification,
        redis_client,
        nearest.driver_id,
        "RIDE_ASSIGNED",
        {
            "ride_id": ride.id,
            "pickup": {"lat": ride.pickup_lat, "lng": ride.pickup_lng},
            "distance_km": nearest.distance_km,
        },
    )
    return AssignmentSchema(
        assigned_driver=NearestDriverSchema(**asdict(nearest)),
        ride=RideSchema.model_validate(ride),
    )


@router.post("/accept", response_model=RideActionSchema)
async def accept_ride(
    payload: RideAcceptSchema,
    session: AsyncSession = Depends(get_session),
):
    """Водитель принимает назначенный заказ."""
    ride = await ride_service.accept_ride(session, payload.ride_id, payload.driver_id)
    return RideActionSchema(ride=RideSchema.model_validate(ride))


@router.post("/start", response_model=RideActionSchema)
async def start_ride(
    payload: RideIdSchema,
    session: AsyncSession = Depends(get_session),
):
    ride = await ride_service.start_ride(session, payload.ride_id)
    return RideActionSchema(ride=RideSchema.model_validate(ride))


@router.post("/finish", response_model=RideActionSchema)
async def finish_ride(
    payload: RideFinishSchema,
    session: AsyncSession = Depends(get_session),
):
    """Завершение поездки с расчетом стоимости."""
    dropoff = payload.dropoff
    ride = await ride_service.finish_ride(
        session,
        payload.ride_id,
        dropoff_lat=dropoff.lat if dropoff else None,
        dropoff_lng=dropoff.lng if dropoff else None,
    )
    return RideActionSchema(ride=RideSchema.model_validate(ride))


@router.post("/cancel", response_model=RideActionSchema)
async def cancel_ride(
    payload: RideCancelSchema,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    redis_client: aioredis.Redis = Depends(get_redis),
):
    """Отмена поездки, при необходимости со штрафом."""
    ride = await ride_service.cancel_ride(session, payload.ride_id, payload.reason)
    if ride.driver_id:
        background_tasks.add_task(
            run_best_effort,
            "notify_driver_canceled",
            publish_notification,
            redis_client,
            ride.driver_id,
            "RIDE_CANCELED",
            {"ride_id": ride.id, "reason": payload.reason},
        )
    return RideActionSchema(ride=RideSchema.model_validate(ride))


@router.get("", response_model=RideHistorySchema)
async def list_rides(
    passenger_id: Optional[str] = Query(None, min_length=1, description="ID пассажира"),
    driver_id: Optional[str] = Query(None, min_length=1, description="ID водителя"),
    session: AsyncSession = Depends(get_session),
):
    """История поездок пассажира или водителя со статистикой и заработком."""
    rides, stats = await ride_service.list_rides(
        session, passenger_id=passenger_id, driver_id=driver_id
    )
    return RideHistorySchema(
        rides=[RideSchema.model_validate(ride) for ride in rides],
        stats=RideStatsSchema(**stats),
    )


@router.post("/estimate", response_model=FareEstimateSchema)
async def estimate_fare(payload: FareEstimateRequestSchema):
    """Предварительная оценка стоимости по ожидаемым расстоянию и времени."""
    fare = calculate_fare(payload.distance_km, payload.duration_minutes)
    return FareEstimateSchema(
        distance_km=payload.distance_km,
        duration_minutes=payload.duration_minutes,
        **asdict(fare),
    )


@router.get("/{ride_id}", response_model=RideSchema)
async def get_ride(
    ride_id: str,
    session: AsyncSession = Depends(get_session),
):
    ride = await ride_service.get_ride(session, ride_id)
    return RideSchema.model_validate(ride)

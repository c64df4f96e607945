"""API эндпоинты водителей: местоположение и статус."""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridehail.schemas.driver import (
    DriverActionSchema,
    DriverSchema,
    DriverStatusUpdateSchema,
    LocationUpdateSchema,
)
from ridehail.services import driver_service
from ridehail.services.best_effort import run_best_effort
from ridehail.services.geo import DriverGeoIndex
from .adapter import JSONErrorRoute
from .dependencies import get_geo_index, get_session, get_session_factory

router = APIRouter(prefix="/drivers", tags=["Drivers"], route_class=JSONErrorRoute)


@router.post("/location", response_model=DriverActionSchema)
async def update_location(
    payload: LocationUpdateSchema,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    geo: DriverGeoIndex = Depends(get_geo_index),
):
    """
    Обновление координат водителя.
    Запись трека активной поездки выполняется в фоне и не влияет на ответ.
    """
    driver = await driver_service.update_location(
        session, geo, payload.driver_id, payload.lat, payload.lng
    )
    background_tasks.add_task(
        run_best_effort,
        "track_active_ride",
        driver_service.track_active_ride,
        session_factory,
        payload.driver_id,
        payload.lat,
        payload.lng,
    )
    return DriverActionSchema(driver=DriverSchema.model_validate(driver))


@router.post("/status", response_model=DriverActionSchema)
async def update_status(
    payload: DriverStatusUpdateSchema,
    session: AsyncSession = Depends(get_session),
    geo: DriverGeoIndex = Depends(get_geo_index),
):
    """Выход на линию / уход с линии."""
    driver = await driver_service.set_driver_status(
        session, geo, payload.driver_id, payload.status, payload.lat, payload.lng
    )
    return DriverActionSchema(driver=DriverSchema.model_validate(driver))

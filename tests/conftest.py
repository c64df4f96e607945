from datetime import timedelta
from typing import Optional

import fakeredis
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import ridehail.models  # noqa: F401
from ridehail.api.v1.dependencies import get_redis, get_session_factory
from ridehail.core.db import Base, utcnow
from ridehail.main import app
from ridehail.models import Driver, Ride
from ridehail.services.geo import DriverGeoIndex

PICKUP = {"lat": 25.03, "lng": 121.56}

# ~1 км по широте
KM_LAT = 1 / 111.195


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def redis_client():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def geo(redis_client):
    return DriverGeoIndex(redis_client)


@pytest.fixture
async def client(session_factory, redis_client):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_redis] = lambda: redis_client
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def get_row(session_factory, model, pk):
    """Читает запись в новой сессии, чтобы не видеть закешированное состояние."""
    async with session_factory() as session:
        return await session.get(model, pk)


async def count_rows(session_factory, model, *where) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(model)
        if where:
            stmt = stmt.where(*where)
        return (await session.execute(stmt)).scalar_one()


async def add_driver(
    session_factory,
    geo: Optional[DriverGeoIndex],
    driver_id: str,
    lat: float = PICKUP["lat"],
    lng: float = PICKUP["lng"],
    status: str = "online",
    name: Optional[str] = None,
) -> Driver:
    async with session_factory() as session:
        driver = Driver(
            id=driver_id,
            name=name or f"Driver {driver_id}",
            car_plate="ABC-1234",
            status=status,
            current_lat=lat,
            current_lng=lng,
        )
        session.add(driver)
        await session.commit()
    if geo is not None:
        await geo.upsert(driver_id, lat, lng)
    return driver


async def add_ride(
    session_factory,
    status: str = "waiting_assignment",
    driver_id: Optional[str] = None,
    passenger_id: str = "p1",
    started_minutes_ago: Optional[int] = None,
) -> Ride:
    async with session_factory() as session:
        ride = Ride(
            passenger_id=passenger_id,
            status=status,
            driver_id=driver_id,
            pickup_lat=PICKUP["lat"],
            pickup_lng=PICKUP["lng"],
        )
        if started_minutes_ago is not None:
            ride.started_at = utcnow() - timedelta(minutes=started_minutes_ago)
        session.add(ride)
        await session.commit()
        return ride

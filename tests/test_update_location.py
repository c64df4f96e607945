import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from ridehail.api.v1.dependencies import get_geo_index
from ridehail.main import app
from ridehail.models import Driver, OpsEvent, RideLocation
from ridehail.services import driver_service
from ridehail.services.geo import DriverGeoIndex
from tests.conftest import PICKUP, add_driver, add_ride, count_rows, get_row


class BrokenRedis:
    """Redis, у которого все гео-команды падают."""

    async def geoadd(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")

    async def zrem(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")

    async def geosearch(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")


async def test_update_location_moves_driver(client, session_factory, geo):
    await add_driver(session_factory, None, "d1")

    response = await client.post(
        "/api/v1/drivers/location", json={"driver_id": "d1", "lat": 25.04, "lng": 121.57}
    )

    assert response.status_code == 200
    assert response.json()["ok"] is True
    driver = await get_row(session_factory, Driver, "d1")
    assert driver.current_lat == 25.04
    assert driver.current_lng == 121.57
    assert driver.last_seen_at is not None

    nearby = await geo.nearby(25.04, 121.57, 1, 5)
    assert [driver_id for driver_id, _ in nearby] == ["d1"]


async def test_update_location_accepts_integer_coordinates(client, session_factory):
    await add_driver(session_factory, None, "d1")

    response = await client.post(
        "/api/v1/drivers/location", json={"driver_id": "d1", "lat": 25, "lng": 121}
    )

    assert response.status_code == 200
    assert (await get_row(session_factory, Driver, "d1")).current_lat == 25


async def test_location_is_tracked_for_active_ride(client, session_factory, geo):
    await add_driver(session_factory, geo, "d1", status="busy")
    ride = await add_ride(session_factory, status="in_progress", driver_id="d1")

    await client.post(
        "/api/v1/drivers/location", json={"driver_id": "d1", "lat": 25.05, "lng": 121.58}
    )

    assert await count_rows(session_factory, RideLocation, RideLocation.ride_id == ride.id) == 1
    assert await count_rows(
        session_factory, OpsEvent, OpsEvent.event_type == "driver_location"
    ) == 1


async def test_location_is_tracked_for_accepted_ride(client, session_factory, geo):
    await add_driver(session_factory, geo, "d1", status="busy")
    ride = await add_ride(session_factory, status="accepted", driver_id="d1")

    await client.post(
        "/api/v1/drivers/location", json={"driver_id": "d1", "lat": 25.05, "lng": 121.58}
    )

    assert await count_rows(session_factory, RideLocation, RideLocation.ride_id == ride.id) == 1


async def test_location_without_active_ride_is_not_tracked(client, session_factory, geo):
    await add_driver(session_factory, geo, "d1")
    await add_ride(session_factory, status="completed", driver_id="d1")

    response = await client.post(
        "/api/v1/drivers/location", json={"driver_id": "d1", "lat": 25.05, "lng": 121.58}
    )

    assert response.status_code == 200
    assert await count_rows(session_factory, RideLocation) == 0
    assert await count_rows(session_factory, OpsEvent) == 0


@pytest.mark.parametrize(
    "body",
    [
        {"driver_id": "d1", "lat": "25.05", "lng": 121.58},
        {"driver_id": "d1", "lat": 25.05, "lng": "east"},
        {"driver_id": "d1", "lat": True, "lng": 121.58},
        {"driver_id": "d1", "lat": 25.05},
        {"lat": 25.05, "lng": 121.58},
        {"driver_id": "", "lat": 25.05, "lng": 121.58},
    ],
)
async def test_update_location_validation(client, session_factory, geo, body):
    await add_driver(session_factory, None, "d1")

    response = await client.post("/api/v1/drivers/location", json=body)

    assert response.status_code == 400
    driver = await get_row(session_factory, Driver, "d1")
    assert driver.current_lat == PICKUP["lat"]
    assert await geo.nearby(25.05, 121.58, 50, 5) == []


async def test_update_location_unknown_driver(client):
    response = await client.post(
        "/api/v1/drivers/location", json={"driver_id": "ghost", "lat": 25.05, "lng": 121.58}
    )

    assert response.status_code == 404


async def test_geo_index_failure_leaves_driver_unchanged(client, session_factory):
    await add_driver(session_factory, None, "d1")
    app.dependency_overrides[get_geo_index] = lambda: DriverGeoIndex(BrokenRedis())

    response = await client.post(
        "/api/v1/drivers/location", json={"driver_id": "d1", "lat": 25.05, "lng": 121.58}
    )

    assert response.status_code == 500
    assert "error" in response.json()
    driver = await get_row(session_factory, Driver, "d1")
    assert driver.current_lat == PICKUP["lat"]
    assert driver.last_seen_at is None


async def test_failed_commit_restores_previous_geo_position(session_factory, geo, monkeypatch):
    await add_driver(session_factory, geo, "d1")

    async def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    async with session_factory() as session:
        monkeypatch.setattr(session, "commit", failing_commit)
        with pytest.raises(OperationalError):
            await driver_service.update_location(session, geo, "d1", 25.2, 121.7)

    near_old = await geo.nearby(PICKUP["lat"], PICKUP["lng"], 0.5, 5)
    assert [driver_id for driver_id, _ in near_old] == ["d1"]
    assert await geo.nearby(25.2, 121.7, 0.5, 5) == []
    assert (await get_row(session_factory, Driver, "d1")).current_lat == PICKUP["lat"]

from sqlalchemy import select

from ridehail.models import Driver, OpsEvent, Ride
from tests.conftest import KM_LAT, PICKUP, add_driver, add_ride, count_rows, get_row


async def _request(client) -> str:
    response = await client.post(
        "/api/v1/rides/request", json={"passenger_id": "p1", "origin": PICKUP}
    )
    return response.json()["ride_id"]


async def test_assigns_single_online_driver(client, session_factory, geo):
    ride_id = await _request(client)
    await add_driver(session_factory, geo, "d1", lat=PICKUP["lat"] + 1.2 * KM_LAT, name="Lin")

    response = await client.post("/api/v1/rides/assign", json={"ride_id": ride_id})

    assert response.status_code == 200
    body = response.json()
    assert body["assigned_driver"]["driver_id"] == "d1"
    assert body["assigned_driver"]["name"] == "Lin"
    assert abs(body["assigned_driver"]["distance_km"] - 1.2) < 0.05
    assert body["ride"]["status"] == "assigned"
    assert body["ride"]["driver_id"] == "d1"

    ride = await get_row(session_factory, Ride, ride_id)
    assert ride.status == "assigned"
    assert ride.driver_id == "d1"
    assert ride.assignment_attempts == 1
    assert ride.assigned_at is not None
    assert ride.last_assignment_at is not None

    driver = await get_row(session_factory, Driver, "d1")
    assert driver.status == "busy"

    async with session_factory() as session:
        events = (await session.execute(
            select(OpsEvent).where(OpsEvent.event_type == "assign_driver")
        )).scalars().all()
    assert len(events) == 1
    assert events[0].ref_id == ride_id
    assert events[0].payload["assigned_driver"]["driver_id"] == "d1"


async def test_no_driver_available_leaves_ride_unchanged(client, session_factory):
    ride_id = await _request(client)

    response = await client.post("/api/v1/rides/assign", json={"ride_id": ride_id})

    assert response.status_code == 200
    assert response.json() == {"error": "no_driver_available"}
    ride = await get_row(session_factory, Ride, ride_id)
    assert ride.status == "waiting_assignment"
    assert ride.driver_id is None
    assert ride.assignment_attempts == 0
    assert await count_rows(session_factory, OpsEvent) == 0


async def test_picks_nearest_online_driver(client, session_factory, geo):
    ride_id = await _request(client)
    await add_driver(session_factory, geo, "far", lat=PICKUP["lat"] + 3 * KM_LAT)
    await add_driver(session_factory, geo, "near", lat=PICKUP["lat"] + 0.5 * KM_LAT)

    response = await client.post("/api/v1/rides/assign", json={"ride_id": ride_id})

    assert response.json()["assigned_driver"]["driver_id"] == "near"
    far = await get_row(session_factory, Driver, "far")
    assert far.status == "online"


async def test_skips_busy_and_offline_drivers(client, session_factory, geo):
    ride_id = await _request(client)
    await add_driver(session_factory, geo, "busy", lat=PICKUP["lat"] + 0.1 * KM_LAT, status="busy")
    await add_driver(session_factory, geo, "off", lat=PICKUP["lat"] + 0.2 * KM_LAT, status="offline")
    await add_driver(session_factory, geo, "free", lat=PICKUP["lat"] + 2 * KM_LAT)

    response = await client.post("/api/v1/rides/assign", json={"ride_id": ride_id})

    assert response.json()["assigned_driver"]["driver_id"] == "free"


async def test_driver_outside_search_radius_is_ignored(client, session_factory, geo):
    ride_id = await _request(client)
    await add_driver(session_factory, geo, "d1", lat=PICKUP["lat"] + 50 * KM_LAT)

    response = await client.post("/api/v1/rides/assign", json={"ride_id": ride_id})

    assert response.json() == {"error": "no_driver_available"}


async def test_busy_driver_is_not_assigned_twice(client, session_factory, geo):
    first = await _request(client)
    second = await _request(client)
    await add_driver(session_factory, geo, "d1")

    await client.post("/api/v1/rides/assign", json={"ride_id": first})
    response = await client.post("/api/v1/rides/assign", json={"ride_id": second})

    assert response.json() == {"error": "no_driver_available"}


async def test_assign_unknown_ride_is_not_found(client):
    response = await client.post("/api/v1/rides/assign", json={"ride_id": "missing"})

    assert response.status_code == 404
    assert "not found" in response.json()["error"]


async def test_assign_already_assigned_ride_is_rejected(client, session_factory, geo):
    await add_driver(session_factory, geo, "d1", status="busy")
    ride = await add_ride(session_factory, status="assigned", driver_id="d1")
    await add_driver(session_factory, geo, "d2")

    response = await client.post("/api/v1/rides/assign", json={"ride_id": ride.id})

    assert response.status_code == 409
    driver = await get_row(session_factory, Driver, "d2")
    assert driver.status == "online"


async def test_assign_requires_ride_id(client):
    response = await client.post("/api/v1/rides/assign", json={})

    assert response.status_code == 400


async def test_online_driver_with_active_ride_is_skipped(client, session_factory, geo):
    # Статус рассинхронизирован вручную: online, но поездка еще идет
    await add_driver(session_factory, geo, "stale", lat=PICKUP["lat"] + 0.1 * KM_LAT)
    await add_ride(session_factory, status="in_progress", driver_id="stale")
    await add_driver(session_factory, geo, "free", lat=PICKUP["lat"] + 2 * KM_LAT)
    ride_id = await _request(client)

    response = await client.post("/api/v1/rides/assign", json={"ride_id": ride_id})

    assert response.status_code == 200
    assert response.json()["assigned_driver"]["driver_id"] == "free"


async def test_only_driver_with_active_ride_means_no_driver(client, session_factory, geo):
    await add_driver(session_factory, geo, "stale")
    await add_ride(session_factory, status="accepted", driver_id="stale")
    ride_id = await _request(client)

    response = await client.post("/api/v1/rides/assign", json={"ride_id": ride_id})

    assert response.status_code == 200
    assert response.json() == {"error": "no_driver_available"}
    assert (await get_row(session_factory, Ride, ride_id)).status == "waiting_assignment"


async def test_finds_online_driver_behind_many_busy_ones(client, session_factory, geo):
    for n in range(25):
        lat = PICKUP["lat"] + (0.1 + n * 0.1) * KM_LAT
        await add_driver(session_factory, geo, f"busy{n}", lat=lat, status="busy")
    await add_driver(session_factory, geo, "free", lat=PICKUP["lat"] + 3 * KM_LAT)
    ride_id = await _request(client)

    response = await client.post("/api/v1/rides/assign", json={"ride_id": ride_id})

    assert response.status_code == 200
    assert response.json()["assigned_driver"]["driver_id"] == "free"
    assert abs(response.json()["assigned_driver"]["distance_km"] - 3.0) < 0.05

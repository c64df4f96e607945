"""
Простой скрипт для нагрузочного тестирования ключевых эндпоинтов сервиса.
"""
import asyncio
import random
import time

import httpx

# --- Настройки ---
BASE_URL = "http://127.0.0.1:8000/api/v1"

NUM_DRIVERS = 200
CENTER = (25.03, 121.56)
SPREAD_DEG = 0.05  # ~5 км вокруг центра

LOCATION_REQUESTS = 2000
RIDE_REQUESTS = 200

# --- Вспомогательные функции ---


def random_point() -> dict:
    return {
        "lat": CENTER[0] + random.uniform(-SPREAD_DEG, SPREAD_DEG),
        "lng": CENTER[1] + random.uniform(-SPREAD_DEG, SPREAD_DEG),
    }


def report(name: str, total: int, success: int, elapsed: float) -> None:
    print(f"{name}: {total} запросов за {elapsed:.2f} сек.")
    print(f"Успешных запросов: {success} ({success / total * 100:.1f}%)")
    if success > 0:
        print(f"RPS (Requests Per Second): {success / elapsed:.2f}")


async def setup_drivers(client: httpx.AsyncClient) -> list:
    """Регистрирует водителей и выводит их на линию."""
    print(f"--- Создание {NUM_DRIVERS} водителей... ---")
    prefix = random.randint(100, 999)
    driver_ids = []
    for i in range(NUM_DRIVERS):
        response = await client.post(
            "/users/register",
            json={"phone": f"+1{prefix}{i:07d}", "name": f"Load Driver {i}", "role": "driver"},
        )
        if response.status_code != 200:
            continue
        driver_id = response.json()["data"]["userId"]
        await client.post(
            "/drivers/status", json={"driver_id": driver_id, "status": "online", **random_point()}
        )
        driver_ids.append(driver_id)
    print(f"Водителей на линии: {len(driver_ids)}")
    return driver_ids


async def run_location_test(client: httpx.AsyncClient, driver_ids: list) -> None:
    print(f"\n--- Тест 1: {LOCATION_REQUESTS} обновлений местоположения... ---")
    tasks = [
        client.post(
            "/drivers/location", json={"driver_id": random.choice(driver_ids), **random_point()}
        )
        for _ in range(LOCATION_REQUESTS)
    ]
    start_time = time.monotonic()
    responses = await asyncio.gather(*tasks)
    elapsed = time.monotonic() - start_time
    report("Location", LOCATION_REQUESTS, sum(1 for r in responses if r.status_code == 200), elapsed)


async def request_and_assign(client: httpx.AsyncClient, n: int) -> str:
    response = await client.post(
        "/rides/request", json={"passenger_id": f"load-passenger-{n}", "origin": random_point()}
    )
    if response.status_code != 200:
        return "failed"
    response = await client.post("/rides/assign", json={"ride_id": response.json()["ride_id"]})
    if response.status_code != 200:
        return "failed"
    return "no_driver" if "error" in response.json() else "assigned"


async def run_assignment_test(client: httpx.AsyncClient) -> None:
    """Параллельные назначения: один водитель не должен получить две поездки."""
    print(f"\n--- Тест 2: {RIDE_REQUESTS} заказов с назначением... ---")
    start_time = time.monotonic()
    results = await asyncio.gather(*(request_and_assign(client, n) for n in range(RIDE_REQUESTS)))
    elapsed = time.monotonic() - start_time
    report("Assign", RIDE_REQUESTS, sum(1 for r in results if r != "failed"), elapsed)
    print(f"Назначено: {results.count('assigned')}, без водителя: {results.count('no_driver')}")


async def main():
    limits = httpx.Limits(max_connections=100)
    async with httpx.AsyncClient(base_url=BASE_URL, limits=limits, timeout=30) as client:
        driver_ids = await setup_drivers(client)
        if not driver_ids:
            print("Водители не созданы, тест остановлен.")
            return
        await run_location_test(client, driver_ids)
        await run_assignment_test(client)


if __name__ == "__main__":
    # Сервер должен быть запущен: uvicorn ridehail.main:app
    asyncio.run(main())

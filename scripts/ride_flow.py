"""
Скрипт для ручной проверки полного цикла поездки на запущенном сервере.
"""
import asyncio
import random

import httpx

BASE_URL = "http://127.0.0.1:8000/api/v1"

PICKUP = {"lat": 25.03, "lng": 121.56}


async def check(response: httpx.Response, step: str) -> dict:
    if response.status_code != 200:
        print(f"❌ {step}: {response.status_code} - {response.text}")
        raise SystemExit(1)
    print(f"✅ {step}")
    return response.json()


async def run_ride_flow():
    """Регистрация водителя, выход на линию и полный цикл одной поездки."""
    async with httpx.AsyncClient(base_url=BASE_URL) as client:
        print("=== Тест цикла поездки ===")

        phone = f"+8869{random.randint(10000000, 99999999)}"
        print("\n1. Регистрация водителя...")
        body = await check(
            await client.post(
                "/users/register",
                json={"phone": phone, "name": "Test Driver", "role": "driver", "carPlate": "TST-0001"},
            ),
            "Регистрация",
        )
        driver_id = body["data"]["userId"]
        print("Код подтверждения выводится в лог сервера на уровне DEBUG")

        print("\n2. Выход на линию рядом с точкой подачи...")
        await check(
            await client.post(
                "/drivers/status",
                json={"driver_id": driver_id, "status": "online",
                      "lat": PICKUP["lat"] + 0.01, "lng": PICKUP["lng"]},
            ),
            "Водитель online",
        )

        print("\n3. Заказ и назначение...")
        body = await check(
            await client.post("/rides/request", json={"passenger_id": "script-passenger", "origin": PICKUP}),
            "Заказ создан",
        )
        ride_id = body["ride_id"]

        body = await check(await client.post("/rides/assign", json={"ride_id": ride_id}), "Назначение")
        if "error" in body:
            print(f"❌ Водитель не назначен: {body['error']}")
            return
        print(f"Назначен {body['assigned_driver']['driver_id']} в {body['assigned_driver']['distance_km']} км")

        print("\n4. Принятие, старт, трек и завершение...")
        await check(
            await client.post("/rides/accept", json={"ride_id": ride_id, "driver_id": driver_id}),
            "Принято",
        )
        await check(await client.post("/rides/start", json={"ride_id": ride_id}), "Старт")
        for step in range(5):
            await client.post(
                "/drivers/location",
                json={"driver_id": driver_id, "lat": PICKUP["lat"] + step * 0.005, "lng": PICKUP["lng"]},
            )
        body = await check(await client.post("/rides/finish", json={"ride_id": ride_id}), "Завершено")
        ride = body["ride"]
        print(f"Расстояние {ride['distance_km']} км, цена {ride['final_price_cents']} центов")

        print("\n5. Повторная отмена завершенной поездки (ожидается 409)...")
        response = await client.post("/rides/cancel", json={"ride_id": ride_id})
        if response.status_code == 409:
            print("✅ Недопустимый переход отклонен")
        else:
            print(f"❌ Ожидался 409: {response.status_code} - {response.text}")


if __name__ == "__main__":
    print("Убедитесь, что сервер запущен на http://127.0.0.1:8000")
    asyncio.run(run_ride_flow())

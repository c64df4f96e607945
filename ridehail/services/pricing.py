"""Расчет стоимости завершенной поездки."""

from dataclasses import dataclass

from ridehail.core.config import settings


@dataclass(frozen=True)
class FareBreakdown:
    gross_cents: int
    commission_cents: int
    final_price_cents: int


def calculate_fare(distance_km: float, duration_minutes: int) -> FareBreakdown:
    """
    Тариф: посадка + за километр + за минуту, минус фиксированная комиссия.
    Итоговая цена не бывает отрицательной.
    """
    gross = round(
        settings.BASE_FARE_CENTS
        + settings.PER_KM_CENTS * distance_km
        + settings.PER_MINUTE_CENTS * duration_minutes
    )
    final_price = max(0, gross - settings.COMMISSION_CENTS)
    return FareBreakdown(
        gross_cents=gross,
        commission_cents=settings.COMMISSION_CENTS,
        final_price_cents=final_price,
    )

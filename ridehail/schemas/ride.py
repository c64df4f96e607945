"""
Pydantic схемы для работы с заказами (rides).
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, confloat, conint, constr

# strict: строки вида "25.0" и bool не принимаются как координаты
Latitude = confloat(strict=True, ge=-90, le=90)
Longitude = confloat(strict=True, ge=-180, le=180)


class Coordinates(BaseModel):
    lat: Latitude = Field(..., description="Широта")
    lng: Longitude = Field(..., description="Долгота")


class RideRequestSchema(BaseModel):
    """
    Схема запроса для создания новой поездки.
    """
    passenger_id: constr(strip_whitespace=True, min_length=1) = Field(
        ..., description="Идентификатор пассажира"
    )
    origin: Coordinates = Field(..., description="Точка подачи")
    destination: Optional[Coordinates] = Field(None, description="Точка назначения")


class RideCreatedSchema(BaseModel):
    ride_id: str = Field(..., description="Уникальный идентификатор поездки")


class RideIdSchema(BaseModel):
    ride_id: constr(strip_whitespace=True, min_length=1)


class RideAcceptSchema(RideIdSchema):
    driver_id: constr(strip_whitespace=True, min_length=1)


class RideCancelSchema(RideIdSchema):
    reason: Optional[str] = Field(None, description="Причина отмены")


class RideFinishSchema(RideIdSchema):
    dropoff: Optional[Coordinates] = Field(None, description="Фактическая точка высадки")


class RideSchema(BaseModel):
    """
    Схема ответа с информацией о поездке.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    passenger_id: str
    driver_id: Optional[str] = None
    status: str
    pickup_lat: float
    pickup_lng: float
    dropoff_lat: Optional[float] = None
    dropoff_lng: Optional[float] = None
    assignment_attempts: int = 0
    created_at: datetime
    assigned_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    distance_km: Optional[float] = None
    duration_minutes: Optional[int] = None
    final_price_cents: Optional[int] = None


class NearestDriverSchema(BaseModel):
    driver_id: str
    name: Optional[str] = None
    car_plate: Optional[str] = None
    distance_km: float


class AssignmentSchema(BaseModel):
    assigned_driver: NearestDriverSchema
    ride: RideSchema


class NoDriverSchema(BaseModel):
    error: Literal["no_driver_available"] = "no_driver_available"


class RideActionSchema(BaseModel):
    ok: bool = True
    ride: RideSchema


class TodayStatsSchema(BaseModel):
    total: int
    completed: int
    earnings_cents: int


class RideStatsSchema(BaseModel):
    total: int
    by_status: Dict[str, int]
    earnings_cents: int = Field(..., description="Сумма по завершенным поездкам")
    today: TodayStatsSchema


class RideHistorySchema(BaseModel):
    rides: List[RideSchema]
    stats: RideStatsSchema


class FareEstimateRequestSchema(BaseModel):
    distance_km: confloat(strict=True, ge=0) = Field(..., description="Ожидаемое расстояние, км")
    duration_minutes: conint(strict=True, ge=0) = Field(..., description="Ожидаемая длительность, мин")


class FareEstimateSchema(BaseModel):
    distance_km: float
    duration_minutes: int
    gross_cents: int
    commission_cents: int
    final_price_cents: int

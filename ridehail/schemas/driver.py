"""Pydantic схемы для водителей."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr, model_validator

from ridehail.models.driver import DriverStatus
from ridehail.schemas.ride import Latitude, Longitude


class LocationUpdateSchema(BaseModel):
    driver_id: constr(strip_whitespace=True, min_length=1)
    lat: Latitude = Field(..., description="Широта")
    lng: Longitude = Field(..., description="Долгота")


class DriverStatusUpdateSchema(BaseModel):
    driver_id: constr(strip_whitespace=True, min_length=1)
    status: DriverStatus
    lat: Optional[Latitude] = None
    lng: Optional[Longitude] = None

    @model_validator(mode="after")
    def _both_coordinates(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be provided together")
        return self


class DriverSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    car_plate: Optional[str] = None
    status: str
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None
    last_seen_at: Optional[datetime] = None


class DriverActionSchema(BaseModel):
    ok: bool = True
    driver: DriverSchema

"""
SQLAlchemy-модель поездки и таблица допустимых переходов статусов.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from ridehail.core.db import Base, generate_id, utcnow


class RideStatus(str, enum.Enum):
    WAITING_ASSIGNMENT = "waiting_assignment"
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"


# Статусы, в которых водитель занят поездкой
ACTIVE_STATUSES: FrozenSet[str] = frozenset({
    RideStatus.ASSIGNED.value,
    RideStatus.ACCEPTED.value,
    RideStatus.IN_PROGRESS.value,
})

TERMINAL_STATUSES: FrozenSet[str] = frozenset({
    RideStatus.COMPLETED.value,
    RideStatus.CANCELED.value,
})

# Переходы только вперед; отмена возможна из любого нетерминального статуса
ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    RideStatus.WAITING_ASSIGNMENT.value: frozenset({
        RideStatus.ASSIGNED.value, RideStatus.CANCELED.value,
    }),
    RideStatus.ASSIGNED.value: frozenset({
        RideStatus.ACCEPTED.value, RideStatus.IN_PROGRESS.value, RideStatus.CANCELED.value,
    }),
    RideStatus.ACCEPTED.value: frozenset({
        RideStatus.IN_PROGRESS.value, RideStatus.CANCELED.value,
    }),
    RideStatus.IN_PROGRESS.value: frozenset({
        RideStatus.COMPLETED.value, RideStatus.CANCELED.value,
    }),
}


def can_transition(current: str, target: str) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


_ACTIVE_RIDE_PREDICATE = text("status IN ('assigned', 'accepted', 'in_progress')")


class Ride(Base):
    __tablename__ = "rides"
    __table_args__ = (
        # Один водитель не может иметь несколько активных поездок
        Index(
            "uq_driver_active_ride",
            "driver_id",
            unique=True,
            postgresql_where=_ACTIVE_RIDE_PREDICATE,
            sqlite_where=_ACTIVE_RIDE_PREDICATE,
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)

    # Пассажир не обязательно зарегистрирован в users, поэтому без внешнего ключа
    passenger_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    driver_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=RideStatus.WAITING_ASSIGNMENT.value, index=True
    )

    pickup_lat: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_lng: Mapped[float] = mapped_column(Float, nullable=False)
    dropoff_lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    dropoff_lng: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    assignment_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_assignment_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Итоги поездки, заполняются при завершении
    distance_km: Mapped[Optional[float]] = mapped_column(Float)
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    final_price_cents: Mapped[Optional[int]] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<Ride id={self.id} status={self.status} driver_id={self.driver_id}>"

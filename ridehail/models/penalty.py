"""Штрафы и информационные записи об отменах поездок."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ridehail.core.db import Base, generate_id, utcnow


class Penalty(Base):
    __tablename__ = "penalties"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    ride_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("rides.id", ondelete="CASCADE"), nullable=False, index=True
    )
    passenger_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    driver_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    type: Mapped[str] = mapped_column(String(64), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reason: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    applied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

"""
SQLAlchemy-модель для сущности User.
Пользователь регистрируется по номеру телефона и подтверждает его кодом из SMS.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ridehail.core.db import Base, generate_id, utcnow


class User(Base):
    """
    Модель пользователя в системе.
    Используется и для пассажиров, и для водителей, и для админов.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)

    phone: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # роли: passenger / driver / admin
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="passenger")

    nickname: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    car_plate: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # Код хранится в открытом виде до подтверждения телефона
    verification_code: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    verification_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} phone={self.phone} role={self.role}>"

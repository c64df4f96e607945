"""
Регистрация пользователя по номеру телефона и подтверждение кода из SMS.

Отправка SMS пока симулируется записью в лог. Ограничения на число попыток
подтверждения нет.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.core.config import settings
from ridehail.core.db import as_utc, generate_id, utcnow
from ridehail.core.errors import ConflictError, NotFoundError, ValidationError
from ridehail.models import Driver, DriverStatus, User

logger = logging.getLogger(__name__)

ROLES = ("admin", "driver", "passenger")


def generate_verification_code() -> str:
    """Шестизначный числовой код."""
    return str(100000 + secrets.randbelow(900000))


async def get_user_by_phone(session: AsyncSession, phone: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.phone == phone))
    return result.scalar_one_or_none()


async def register_user(
    session: AsyncSession,
    phone: str,
    name: str,
    role: str,
    nickname: Optional[str] = None,
    car_plate: Optional[str] = None,
    remarks: Optional[str] = None,
) -> User:
    if not phone or not name or not role:
        raise ValidationError("phone, name and role are required")
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")

    if await get_user_by_phone(session, phone) is not None:
        raise ConflictError("Phone number already registered")

    code = generate_verification_code()
    user = User(
        id=generate_id(),
        phone=phone,
        name=name,
        role=role,
        nickname=nickname,
        car_plate=car_plate,
        remarks=remarks,
        verification_code=code,
        verification_expires_at=utcnow() + timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES),
        is_verified=False,
    )
    session.add(user)

    # Для водителя сразу создаем профиль, на линию он выходит сам
    if role == "driver":
        session.add(Driver(
            id=user.id,
            name=name,
            phone=phone,
            car_plate=car_plate,
            status=DriverStatus.OFFLINE.value,
        ))

    try:
        await session.commit()
    except IntegrityError as e:
        # Параллельная регистрация того же номера
        raise ConflictError("Phone number already registered") from e

    logger.info(f"Пользователь {user.id} зарегистрирован с ролью {role}")
    logger.debug(f"Симуляция отправки SMS на {phone}: код {code}")
    return user


async def verify_phone(
    session: AsyncSession, phone: str, verification_code: str, now: Optional[datetime] = None
) -> User:
    """
    Проверяет код подтверждения. При любой ошибке запись пользователя не меняется.
    """
    if not phone or not verification_code:
        raise ValidationError("phone and verificationCode are required")

    user = await get_user_by_phone(session, phone)
    if user is None:
        raise NotFoundError("User not found, please register first")
    if user.is_verified:
        raise ConflictError("User is already verified")
    if user.verification_code != verification_code:
        raise ValidationError("Invalid verification code")

    now = now or utcnow()
    expires_at = as_utc(user.verification_expires_at)
    if expires_at is None or now > expires_at:
        raise ValidationError("Verification code expired, please register again")

    user.is_verified = True
    user.verification_code = None
    user.verification_expires_at = None
    user.updated_at = now
    await session.commit()
    logger.info(f"Телефон пользователя {user.id} подтвержден")
    return user

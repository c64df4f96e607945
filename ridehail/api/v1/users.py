"""Регистрация пользователя и подтверждение телефона."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.schemas.user import PhoneVerifySchema, UserRegisterSchema
from ridehail.services import registration_service
from .adapter import EnvelopeRoute, error_code
from .dependencies import get_session

router = APIRouter(prefix="/users", tags=["Users"], route_class=EnvelopeRoute)


@router.post("/register")
@error_code("USER_REGISTER_FAILED")
async def register_user(
    payload: UserRegisterSchema,
    session: AsyncSession = Depends(get_session),
):
    """Регистрация по номеру телефона, код подтверждения уходит по SMS."""
    user = await registration_service.register_user(
        session,
        phone=payload.phone,
        name=payload.name,
        role=payload.role,
        nickname=payload.nickname,
        car_plate=payload.car_plate,
        remarks=payload.remarks,
    )
    return {
        "success": True,
        "data": {
            "userId": user.id,
            "phone": user.phone,
            "name": user.name,
            "role": user.role,
            "verificationRequired": True,
        },
        "message": "Registration successful, enter the SMS verification code",
    }


@router.post("/verify-phone")
@error_code("PHONE_VERIFICATION_FAILED")
async def verify_phone(
    payload: PhoneVerifySchema,
    session: AsyncSession = Depends(get_session),
):
    user = await registration_service.verify_phone(
        session, payload.phone, payload.verification_code
    )
    return {
        "success": True,
        "data": {
            "userId": user.id,
            "phone": user.phone,
            "name": user.name,
            "role": user.role,
            "isVerified": True,
        },
        "message": "Phone number verified",
    }

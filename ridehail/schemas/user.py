"""Pydantic схемы регистрации и подтверждения телефона."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, constr

UserRole = Literal["admin", "driver", "passenger"]


class UserRegisterSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: constr(strip_whitespace=True, min_length=1)
    name: constr(strip_whitespace=True, min_length=1)
    role: UserRole
    nickname: Optional[str] = None
    car_plate: Optional[str] = Field(None, alias="carPlate")
    remarks: Optional[str] = None


class PhoneVerifySchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: constr(strip_whitespace=True, min_length=1)
    verification_code: constr(strip_whitespace=True, min_length=1) = Field(
        ..., alias="verificationCode"
    )

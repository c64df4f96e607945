"""Схемы push-уведомлений."""

from typing import Optional

from pydantic import BaseModel, constr


class PushRequestSchema(BaseModel):
    user_id: constr(strip_whitespace=True, min_length=1)
    title: Optional[str] = None
    body: Optional[str] = None


class PushResponseSchema(BaseModel):
    ok: bool = True
    subscribers: int

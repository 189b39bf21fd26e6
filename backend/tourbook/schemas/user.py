"""User request/response schemas. Emails are normalized to lowercase."""

import re
import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from tourbook.schemas.common import CamelModel

Role = Literal["user", "guide", "lead-guide", "admin"]

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not _EMAIL.match(value):
        raise ValueError("Please provide a valid email")
    return value


class UserCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=255)
    photo: str = Field(default="default.jpg", max_length=255)
    role: Role = "user"

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class UserUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    photo: Optional[str] = Field(default=None, max_length=255)
    role: Optional[Role] = None
    active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v) if v is not None else v


class UserResponse(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    photo: str
    role: str
    created_at: datetime

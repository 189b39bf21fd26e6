"""User ORM model (`users` table). No credentials are stored here."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from tourbook.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Stored lowercased by the user service; unique across accounts
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    photo: Mapped[str] = mapped_column(String(255), nullable=False, default="default.jpg")

    # Values: user, guide, lead-guide, admin
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")

    # Deactivated accounts are hidden from listings instead of deleted
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"

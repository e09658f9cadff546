# src/models/users.py
from __future__ import annotations

import datetime as dt
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.database import Base

if TYPE_CHECKING:
    from src.models.medicine import Medicine
    from src.models.reminder import Reminder
    from src.models.fcm_token import FcmToken


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    # subject ("sub"/"uid") of the verified ID token
    uid: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(120), nullable=False, default="User")

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    avatar: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())

    medicines: Mapped[List["Medicine"]] = relationship(
        "Medicine",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    reminders: Mapped[List["Reminder"]] = relationship(
        "Reminder",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    fcm_tokens: Mapped[List["FcmToken"]] = relationship(
        "FcmToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

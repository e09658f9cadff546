# src/models/reminder.py
from __future__ import annotations

import datetime as dt
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.database import Base
from src.models.medicine import Priority

if TYPE_CHECKING:
    from src.models.users import User
    from src.models.medicine import Medicine


class Reminder(Base):
    __tablename__ = "reminders"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    medicine_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        ForeignKey("medicines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    owner_uid: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.uid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # naive local time in settings.app_timezone
    scheduled_time: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)

    taken: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    skipped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    taken_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    priority: Mapped[Priority] = mapped_column(
        SqlEnum(Priority, name="reminder_priority"),
        nullable=False,
        default=Priority.medium,
    )

    # set once a "dose is due" push went out
    notified_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("medicine_id", "scheduled_time", name="uq_reminders_medicine_time"),
        CheckConstraint("NOT (taken AND skipped)", name="ck_reminders_taken_xor_skipped"),
        Index("idx_reminders_owner_time", "owner_uid", "scheduled_time"),
        Index("idx_reminders_push_scan", "scheduled_time", "taken", "skipped", "notified_at"),
    )

    user: Mapped["User"] = relationship("User", back_populates="reminders", uselist=False)
    medicine: Mapped["Medicine"] = relationship("Medicine", back_populates="reminders", uselist=False)

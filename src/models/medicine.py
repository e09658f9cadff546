# src/models/medicine.py
from __future__ import annotations

import datetime as dt
import enum
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.database import Base

if TYPE_CHECKING:
    from src.models.users import User
    from src.models.reminder import Reminder


class MedicineType(str, enum.Enum):
    tablet = "tablet"
    capsule = "capsule"
    liquid = "liquid"
    injection = "injection"
    inhaler = "inhaler"
    drops = "drops"
    cream = "cream"
    patch = "patch"


class Frequency(str, enum.Enum):
    once_daily = "once-daily"
    twice_daily = "twice-daily"
    three_times_daily = "three-times-daily"
    four_times_daily = "four-times-daily"
    as_needed = "as-needed"
    weekly = "weekly"
    monthly = "monthly"


class Priority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class Medicine(Base):
    __tablename__ = "medicines"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    owner_uid: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.uid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    dosage_amount: Mapped[str] = mapped_column(String(20), nullable=False)
    dosage_unit: Mapped[str] = mapped_column(String(10), nullable=False)

    medicine_type: Mapped[MedicineType] = mapped_column(
        SqlEnum(MedicineType, name="medicine_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MedicineType.tablet,
    )

    frequency: Mapped[Frequency] = mapped_column(
        SqlEnum(Frequency, name="medicine_frequency", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Frequency.once_daily,
    )

    # ["08:00", "20:00"]
    reminder_times: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ["monday", ...]; empty means every day
    days: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    priority: Mapped[Priority] = mapped_column(
        SqlEnum(Priority, name="reminder_priority"),
        nullable=False,
        default=Priority.medium,
    )

    stock_quantity: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)

    # soft delete flag
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # cached display value, recomputed from reminder history
    adherence_rate: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_medicines_owner_active", "owner_uid", "is_active"),
    )

    user: Mapped["User"] = relationship("User", back_populates="medicines", uselist=False)

    reminders: Mapped[List["Reminder"]] = relationship(
        "Reminder",
        back_populates="medicine",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

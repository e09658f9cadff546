# src/services/medicine.py
from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from src.models.medicine import Frequency, Medicine
from src.models.reminder import Reminder
from src.repositories.medicines import MedicineRepository
from src.repositories.reminders import ReminderRepository
from src.schemas.schema_medicine import (
    CreateMedicine,
    MedicineAlerts,
    UpdateMedicine,
)

logger = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 7
LOW_STOCK_BELOW = 7

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DEFAULT_TIMES = {
    Frequency.once_daily: ["09:00"],
    Frequency.twice_daily: ["09:00", "21:00"],
    Frequency.three_times_daily: ["08:00", "14:00", "20:00"],
    Frequency.four_times_daily: ["08:00", "12:00", "16:00", "20:00"],
    Frequency.weekly: ["09:00"],
    Frequency.monthly: ["09:00"],
}


class MedicineValidationError(ValueError):
    pass


def default_reminder_times(frequency: Frequency) -> List[str]:
    return list(DEFAULT_TIMES.get(frequency, ["09:00"]))


def validate_medicine(medicine: Medicine, today: date, *, creating: bool) -> None:
    if creating and medicine.start_date < today:
        raise MedicineValidationError("Start date cannot be in the past")
    if medicine.end_date is not None and medicine.end_date < medicine.start_date:
        raise MedicineValidationError("End date must be after start date")
    if not medicine.reminder_times:
        raise MedicineValidationError("At least one reminder time is required")


def create_medicine(
    repo: MedicineRepository,
    reminder_repo: ReminderRepository,
    owner_uid: str,
    body: CreateMedicine,
    now: datetime,
) -> Medicine:
    today = now.date()
    medicine = Medicine(
        owner_uid=owner_uid,
        name=body.name.strip(),
        dosage_amount=body.dosage.amount,
        dosage_unit=body.dosage.unit,
        medicine_type=body.type,
        frequency=body.frequency,
        reminder_times=body.reminder_times or default_reminder_times(body.frequency),
        days=[d.value for d in body.days],
        start_date=body.start_date or today,
        end_date=body.end_date,
        instructions=body.instructions,
        notes=body.notes,
        priority=body.priority,
        stock_quantity=body.stock_quantity,
        is_active=True,
    )
    validate_medicine(medicine, today, creating=True)

    medicine = repo.upsert(medicine)
    logger.info("[medicine] created id=%s name=%s times=%s", medicine.id, medicine.name, medicine.reminder_times)

    materialize_reminders(reminder_repo, medicine, today)
    return medicine


# request field -> model attribute
UPDATE_FIELDS = {
    "name": "name",
    "type": "medicine_type",
    "frequency": "frequency",
    "reminder_times": "reminder_times",
    "start_date": "start_date",
    "end_date": "end_date",
    "instructions": "instructions",
    "notes": "notes",
    "priority": "priority",
    "stock_quantity": "stock_quantity",
    "is_active": "is_active",
}

# edits that change which doses exist
SCHEDULE_FIELDS = {"frequency", "reminder_times", "days", "start_date", "end_date"}

REQUIRED_FIELDS = {
    "name", "dosage", "type", "frequency", "reminder_times", "days",
    "start_date", "priority", "is_active",
}


def update_medicine(
    repo: MedicineRepository,
    reminder_repo: ReminderRepository,
    owner_uid: str,
    medicine_id: int,
    body: UpdateMedicine,
    now: datetime,
) -> Optional[Medicine]:
    """
    Merge the sent fields into the medicine. A schedule change replaces the
    unlogged reminders from now on; taken, skipped and past ones stay.
    An inactive medicine can be found here so that isActive=true restores it.
    """
    medicine = repo.get(owner_uid, medicine_id, active_only=False)
    if medicine is None:
        return None
    if not medicine.is_active and body.is_active is not True:
        return None

    sent = body.model_fields_set
    for field in REQUIRED_FIELDS & sent:
        if getattr(body, field) is None:
            raise MedicineValidationError(f"{field} cannot be null")

    for field, attr in UPDATE_FIELDS.items():
        if field in sent:
            value = getattr(body, field)
            if field == "name":
                value = value.strip()
            setattr(medicine, attr, value)

    if "dosage" in sent:
        medicine.dosage_amount = body.dosage.amount
        medicine.dosage_unit = body.dosage.unit
    if "days" in sent:
        medicine.days = [d.value for d in body.days]

    try:
        validate_medicine(medicine, now.date(), creating=False)
    except MedicineValidationError:
        repo.db.rollback()
        raise

    medicine = repo.upsert(medicine)
    logger.info("[medicine] updated id=%s fields=%s", medicine.id, sorted(sent))
    if SCHEDULE_FIELDS & sent and medicine.is_active:
        realign_reminders(reminder_repo, medicine, now)
    return medicine


def realign_reminders(reminder_repo: ReminderRepository, medicine: Medicine, now: datetime) -> int:
    """Rebuild the medicine's not-yet-due reminders after a schedule edit."""
    days = set(reminder_repo.delete_unlogged(medicine.id, now))
    days.add(now.date())
    created = 0
    for day in sorted(days):
        created += len(materialize_reminders(reminder_repo, medicine, day, not_before=now))
    logger.info("[medicine] realigned reminders medicine_id=%s created=%d", medicine.id, created)
    return created


def delete_medicine(repo: MedicineRepository, owner_uid: str, medicine_id: int) -> bool:
    deleted = repo.soft_delete(owner_uid, medicine_id)
    if deleted:
        logger.info("[medicine] soft-deleted id=%s", medicine_id)
    return deleted


def _runs_on(medicine: Medicine, day: date) -> bool:
    if not medicine.is_active:
        return False
    if day < medicine.start_date:
        return False
    if medicine.end_date is not None and day > medicine.end_date:
        return False
    if medicine.frequency == Frequency.as_needed:
        return False

    if medicine.days:
        return WEEKDAYS[day.weekday()] in medicine.days
    if medicine.frequency == Frequency.weekly:
        return day.weekday() == medicine.start_date.weekday()
    if medicine.frequency == Frequency.monthly:
        # 31st -> last day of shorter months
        last_day = calendar.monthrange(day.year, day.month)[1]
        return day.day == min(medicine.start_date.day, last_day)
    return True


def schedule_for_day(medicine: Medicine, day: date) -> List[datetime]:
    """Dose times of ``medicine`` on ``day`` (empty when it does not run that day)."""
    if not _runs_on(medicine, day):
        return []
    times = []
    for hh_mm in medicine.reminder_times or []:
        hour, minute = (int(part) for part in hh_mm.split(":"))
        times.append(datetime.combine(day, time(hour, minute)))
    return sorted(times)


def materialize_reminders(
    reminder_repo: ReminderRepository,
    medicine: Medicine,
    day: date,
    *,
    not_before: Optional[datetime] = None,
) -> List[Reminder]:
    """
    Create the missing reminders of ``medicine`` for ``day``, skipping times
    before ``not_before`` when given.
    Existing ones are left untouched, so calling this repeatedly is safe.
    """
    wanted = schedule_for_day(medicine, day)
    if not_before is not None:
        wanted = [t for t in wanted if t >= not_before]
    if not wanted:
        return []

    day_start = datetime.combine(day, time.min)
    existing = {
        r.scheduled_time
        for r in reminder_repo.find(
            medicine.owner_uid,
            medicine_id=medicine.id,
            start=day_start,
            end=day_start + timedelta(days=1),
            active_only=False,
        )
    }

    new_rows = [
        Reminder(
            medicine_id=medicine.id,
            owner_uid=medicine.owner_uid,
            scheduled_time=scheduled,
            taken=False,
            skipped=False,
            priority=medicine.priority,
        )
        for scheduled in wanted
        if scheduled not in existing
    ]
    if not new_rows:
        return []

    try:
        created = reminder_repo.upsert_all(new_rows)
    except IntegrityError:
        # another request materialized the same day first
        reminder_repo.db.rollback()
        logger.warning("[medicine] reminders for medicine_id=%s on %s already exist", medicine.id, day)
        return []

    logger.info("[medicine] materialized %d reminder(s) medicine_id=%s day=%s", len(created), medicine.id, day)
    return created


def medicine_alerts(medicine: Medicine, today: date) -> MedicineAlerts:
    expired = False
    expiring_soon = False
    days_until_expiry = None
    if medicine.end_date is not None:
        days_until_expiry = (medicine.end_date - today).days
        expired = today > medicine.end_date
        expiring_soon = not expired and days_until_expiry <= EXPIRY_WARNING_DAYS

    low_stock = medicine.stock_quantity is not None and medicine.stock_quantity < LOW_STOCK_BELOW
    return MedicineAlerts(
        expired=expired,
        expiring_soon=expiring_soon,
        days_until_expiry=days_until_expiry,
        low_stock=low_stock,
    )

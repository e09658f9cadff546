# src/services/reminders.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from src.models.reminder import Reminder
from src.repositories.medicines import MedicineRepository
from src.repositories.reminders import ReminderRepository
from src.services.adherence import refresh_medicine_adherence
from src.services.clock import to_local_naive
from src.services.medicine import materialize_reminders

logger = logging.getLogger(__name__)

UPCOMING_HORIZON_DAYS = 7


class ReminderStateError(ValueError):
    pass


def ensure_reminders(
    medicine_repo: MedicineRepository,
    reminder_repo: ReminderRepository,
    owner_uid: str,
    days: Iterable[date],
) -> int:
    """Materialize the user's reminders for ``days`` (missing ones only)."""
    days = list(days)
    created = 0
    for medicine in medicine_repo.find(owner_uid):
        for day in days:
            created += len(materialize_reminders(reminder_repo, medicine, day))
    return created


def list_today(
    medicine_repo: MedicineRepository,
    reminder_repo: ReminderRepository,
    owner_uid: str,
    now: datetime,
) -> List[Reminder]:
    today = now.date()
    ensure_reminders(medicine_repo, reminder_repo, owner_uid, [today])

    day_start = datetime.combine(today, time.min)
    return reminder_repo.find(owner_uid, start=day_start, end=day_start + timedelta(days=1))


def list_upcoming_window(
    medicine_repo: MedicineRepository,
    reminder_repo: ReminderRepository,
    owner_uid: str,
    now: datetime,
) -> List[Reminder]:
    """Reminders from today through the next 7 days; the view filter narrows them."""
    today = now.date()
    days = [today + timedelta(days=i) for i in range(UPCOMING_HORIZON_DAYS + 1)]
    ensure_reminders(medicine_repo, reminder_repo, owner_uid, days)

    return reminder_repo.find(
        owner_uid,
        start=datetime.combine(today, time.min),
        end=datetime.combine(days[-1] + timedelta(days=1), time.min),
    )


def log_adherence(
    reminder_repo: ReminderRepository,
    owner_uid: str,
    reminder_id: int,
    *,
    taken: bool,
    now: datetime,
    taken_at: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> Optional[Reminder]:
    """
    Record a dose as taken (taken=True) or skipped (taken=False).
    The two flags are always written together so they never both hold.
    """
    reminder = reminder_repo.get(owner_uid, reminder_id)
    if reminder is None:
        return None

    if taken:
        when = to_local_naive(taken_at) if taken_at else now
        if when > now:
            raise ReminderStateError("takenAt cannot be in the future")
        reminder.taken = True
        reminder.skipped = False
        reminder.taken_at = when
    else:
        reminder.taken = False
        reminder.skipped = True
        reminder.taken_at = None

    if notes is not None:
        reminder.notes = notes

    reminder = reminder_repo.upsert(reminder)
    logger.info(
        "[reminders] logged reminder_id=%s medicine_id=%s taken=%s",
        reminder.id, reminder.medicine_id, taken,
    )

    refresh_medicine_adherence(reminder_repo, reminder.medicine, now)
    reminder_repo.db.commit()
    return reminder


def materialize_all(db: Session, day: date, now: datetime) -> int:
    """
    Daily job body: create ``day``'s reminders for every active medicine and
    refresh the cached adherence rates.
    """
    medicine_repo = MedicineRepository(db)
    reminder_repo = ReminderRepository(db)

    created = 0
    medicines = medicine_repo.find()
    for medicine in medicines:
        created += len(materialize_reminders(reminder_repo, medicine, day))
        refresh_medicine_adherence(reminder_repo, medicine, now)
    db.commit()

    logger.info("[reminders] materialized day=%s medicines=%d created=%d", day, len(medicines), created)
    return created

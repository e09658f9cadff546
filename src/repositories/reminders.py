# src/repositories/reminders.py
from __future__ import annotations

import datetime as dt
from typing import Iterable, List, Optional

from fastapi import Depends
from sqlalchemy import delete, select
from sqlalchemy.orm import Session, joinedload

from src.db.database import get_db
from src.models.medicine import Medicine
from src.models.reminder import Reminder
from src.services.reminder_status import MISSED_AFTER


class ReminderRepository:
    """
    Reminder storage. A reminder whose medicine is inactive is simply left out
    of ``find``/``get`` (active_only=True). Only unlogged future reminders are
    ever deleted, when a schedule edit replaces them.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _base(self, active_only: bool):
        stmt = (
            select(Reminder)
            .join(Medicine, Reminder.medicine_id == Medicine.id)
            .options(joinedload(Reminder.medicine))
            .order_by(Reminder.scheduled_time.asc(), Reminder.id.asc())
        )
        if active_only:
            stmt = stmt.where(Medicine.is_active.is_(True))
        return stmt

    def find(
        self,
        owner_uid: Optional[str] = None,
        *,
        medicine_id: Optional[int] = None,
        start: Optional[dt.datetime] = None,
        end: Optional[dt.datetime] = None,
        active_only: bool = True,
    ) -> List[Reminder]:
        """Reminders with start <= scheduled_time < end (either bound optional)."""
        stmt = self._base(active_only)
        if owner_uid is not None:
            stmt = stmt.where(Reminder.owner_uid == owner_uid)
        if medicine_id is not None:
            stmt = stmt.where(Reminder.medicine_id == medicine_id)
        if start is not None:
            stmt = stmt.where(Reminder.scheduled_time >= start)
        if end is not None:
            stmt = stmt.where(Reminder.scheduled_time < end)
        return list(self.db.execute(stmt).unique().scalars().all())

    def get(self, owner_uid: str, reminder_id: int, *, active_only: bool = True) -> Optional[Reminder]:
        stmt = self._base(active_only).where(
            Reminder.owner_uid == owner_uid,
            Reminder.id == reminder_id,
        )
        return self.db.execute(stmt).unique().scalars().first()

    def find_due_unnotified(self, now: dt.datetime) -> List[Reminder]:
        # reminders currently in their "due" window with no push sent yet
        stmt = self._base(active_only=True).where(
            Reminder.taken.is_(False),
            Reminder.skipped.is_(False),
            Reminder.notified_at.is_(None),
            Reminder.scheduled_time < now,
            Reminder.scheduled_time >= now - MISSED_AFTER,
        )
        return list(self.db.execute(stmt).unique().scalars().all())

    def delete_unlogged(self, medicine_id: int, since: dt.datetime) -> List[dt.date]:
        """
        Delete the medicine's reminders at or after ``since`` that were neither
        taken nor skipped. Returns the days they were on.
        """
        where = (
            Reminder.medicine_id == medicine_id,
            Reminder.taken.is_(False),
            Reminder.skipped.is_(False),
            Reminder.scheduled_time >= since,
        )
        times = self.db.execute(select(Reminder.scheduled_time).where(*where)).scalars().all()
        if not times:
            return []
        self.db.execute(delete(Reminder).where(*where).execution_options(synchronize_session="fetch"))
        self.db.commit()
        return sorted({t.date() for t in times})

    def upsert(self, reminder: Reminder) -> Reminder:
        self.db.add(reminder)
        self.db.commit()
        self.db.refresh(reminder)
        return reminder

    def upsert_all(self, reminders: Iterable[Reminder]) -> List[Reminder]:
        rows = list(reminders)
        if not rows:
            return rows
        self.db.add_all(rows)
        self.db.commit()
        return rows


def get_reminder_repository(db: Session = Depends(get_db)) -> ReminderRepository:
    return ReminderRepository(db)

# src/services/reminder_notifications.py
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from src.repositories.reminders import ReminderRepository
from src.services import fcm_push

logger = logging.getLogger(__name__)


def process_due_reminders(db: Session, now: datetime) -> int:
    """
    Runs every minute: one push per reminder that has become due and was
    not notified yet.

    Duplicate guard:
      - only reminders with notified_at IS NULL are picked up
      - notified_at = now is set once at least one device accepted the push
    Reminders left unmarked are retried on the next run until they turn missed.
    """
    rows = ReminderRepository(db).find_due_unnotified(now)
    logger.info("[reminder_push] now=%s candidates=%d", now, len(rows))

    sent_count = 0
    for reminder in rows:
        medicine = reminder.medicine
        title = "Medicine reminder"
        body = f"Time to take {medicine.name} ({medicine.dosage_amount} {medicine.dosage_unit})"
        data = {
            "type": "medicine_reminder",
            "reminder_id": reminder.id,
            "medicine_id": medicine.id,
            "scheduled_time": reminder.scheduled_time.isoformat(),
            "priority": medicine.priority.value,
        }

        try:
            success, fail, deactivated = fcm_push.send_push_to_user(
                db=db,
                owner_uid=reminder.owner_uid,
                title=title,
                body=body,
                data=data,
            )
            logger.info(
                "[reminder_push] result reminder_id=%s owner=%s success=%d fail=%d deactivated=%d",
                reminder.id, fcm_push.mask_uid(reminder.owner_uid), success, fail, deactivated,
            )

            if success > 0:
                reminder.notified_at = now
                sent_count += 1
            else:
                logger.warning("[reminder_push] not marked, will retry reminder_id=%s", reminder.id)

            db.commit()

        except Exception:
            db.rollback()
            logger.exception("[reminder_push] failed reminder_id=%s", reminder.id)
            # keep going with the other reminders

    logger.info("[reminder_push] done sent_count=%d", sent_count)
    return sent_count

# src/routers/reminders.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.auth.dependencies import get_current_user
from src.models.medicine import Priority
from src.models.reminder import Reminder
from src.models.users import User
from src.repositories.medicines import MedicineRepository, get_medicine_repository
from src.repositories.reminders import ReminderRepository, get_reminder_repository
from src.schemas.schema_medicine import Dosage
from src.schemas.schema_reminder import (
    LogAdherenceRequest,
    LogAdherenceResponse,
    ReminderItem,
    ReminderSummary,
    TodayRemindersResponse,
    UpcomingReminderItem,
    UpcomingRemindersResponse,
)
from src.services.clock import current_time
from src.services.reminder_status import (
    ReminderStatus,
    TodayView,
    UpcomingView,
    Urgency,
    filter_reminders,
    minutes_overdue,
    minutes_until,
    select_upcoming,
    status_or_upcoming,
    summarize_reminders,
    time_until_label,
    urgency_level,
)
from src.services.reminders import (
    ReminderStateError,
    list_today,
    list_upcoming_window,
    log_adherence,
)

router = APIRouter(prefix="/api/reminders", tags=["reminders"])


def _item_fields(reminder: Reminder, now: datetime) -> dict:
    medicine = reminder.medicine
    status_ = status_or_upcoming(reminder, now)
    return dict(
        id=reminder.id,
        medicine_id=reminder.medicine_id,
        name=medicine.name,
        dosage=Dosage(amount=medicine.dosage_amount, unit=medicine.dosage_unit),
        type=medicine.medicine_type,
        instructions=medicine.instructions,
        scheduled_time=reminder.scheduled_time,
        taken=reminder.taken,
        skipped=reminder.skipped,
        taken_at=reminder.taken_at,
        notes=reminder.notes,
        priority=reminder.priority,
        status=status_,
        minutes_until=minutes_until(reminder.scheduled_time, now) if status_ is ReminderStatus.upcoming else None,
        minutes_overdue=minutes_overdue(reminder.scheduled_time, now) if status_ is ReminderStatus.missed else None,
    )


def to_reminder_item(reminder: Reminder, now: datetime) -> ReminderItem:
    return ReminderItem(**_item_fields(reminder, now))


def to_upcoming_item(reminder: Reminder, now: datetime) -> UpcomingReminderItem:
    return UpcomingReminderItem(
        **_item_fields(reminder, now),
        urgency=urgency_level(reminder.scheduled_time, now),
        time_until=time_until_label(reminder.scheduled_time, now),
    )


@router.get("/today", response_model=TodayRemindersResponse)
def get_today_reminders(
    view: TodayView = Query(TodayView.all),
    current_user: User = Depends(get_current_user),
    medicine_repo: MedicineRepository = Depends(get_medicine_repository),
    reminder_repo: ReminderRepository = Depends(get_reminder_repository),
    now: datetime = Depends(current_time),
):
    """
    Today's doses with their status. ``summary`` always covers the whole
    day; ``view`` only narrows ``reminders``.
    """
    reminders = list_today(medicine_repo, reminder_repo, current_user.uid, now)
    selected = filter_reminders(reminders, view, now)
    items = [to_reminder_item(r, now) for r in selected]

    return TodayRemindersResponse(
        date=now.date(),
        view=view,
        count=len(items),
        reminders=items,
        summary=ReminderSummary(**summarize_reminders(reminders, now)),
    )


@router.get("/upcoming", response_model=UpcomingRemindersResponse)
def get_upcoming_reminders(
    view: UpcomingView = Query(UpcomingView.today),
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    medicine_repo: MedicineRepository = Depends(get_medicine_repository),
    reminder_repo: ReminderRepository = Depends(get_reminder_repository),
    now: datetime = Depends(current_time),
):
    reminders = list_upcoming_window(medicine_repo, reminder_repo, current_user.uid, now)
    selected = select_upcoming(reminders, view, now)
    items = [to_upcoming_item(r, now) for r in selected]

    # totals describe the whole view, the list honors limit
    high_priority = sum(1 for i in items if i.priority == Priority.high)
    urgent = sum(1 for i in items if i.urgency == Urgency.urgent)
    if limit is not None:
        items = items[:limit]

    return UpcomingRemindersResponse(
        view=view,
        total=len(selected),
        high_priority=high_priority,
        urgent=urgent,
        reminders=items,
    )


@router.post("/{reminder_id}/adherence", response_model=LogAdherenceResponse)
def log_reminder_adherence(
    reminder_id: int,
    body: LogAdherenceRequest,
    current_user: User = Depends(get_current_user),
    reminder_repo: ReminderRepository = Depends(get_reminder_repository),
    now: datetime = Depends(current_time),
):
    try:
        reminder = log_adherence(
            reminder_repo,
            current_user.uid,
            reminder_id,
            taken=body.taken,
            taken_at=body.taken_at,
            notes=body.notes,
            now=now,
        )
    except ReminderStateError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if reminder is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reminder not found")

    message = "Medicine marked as taken" if body.taken else "Medicine marked as skipped"
    return LogAdherenceResponse(message=message, reminder=to_reminder_item(reminder, now))

# src/routers/adherence.py
from datetime import datetime, time, timedelta

from fastapi import APIRouter, Depends, Query

from src.auth.dependencies import get_current_user
from src.models.users import User
from src.repositories.reminders import ReminderRepository, get_reminder_repository
from src.schemas.schema_adherence import PERIOD_DAYS, AdherencePeriod, AdherenceReport
from src.services.adherence import (
    adherence_grade,
    adherence_percent,
    best_streak,
    build_day_stats,
    current_streak,
    totals,
)
from src.services.clock import current_time

router = APIRouter(prefix="/api/adherence", tags=["adherence"])


@router.get("", response_model=AdherenceReport)
def get_adherence_report(
    period: AdherencePeriod = Query(AdherencePeriod.week),
    current_user: User = Depends(get_current_user),
    reminder_repo: ReminderRepository = Depends(get_reminder_repository),
    now: datetime = Depends(current_time),
):
    """Day-by-day adherence over the last 7/30/365 days, today included."""
    end_date = now.date()
    start_date = end_date - timedelta(days=PERIOD_DAYS[period] - 1)

    reminders = reminder_repo.find(
        current_user.uid,
        start=datetime.combine(start_date, time.min),
        end=datetime.combine(end_date + timedelta(days=1), time.min),
    )
    days = build_day_stats(reminders, start_date, end_date, now)

    percentage = adherence_percent(days)
    scheduled, taken = totals(days)

    return AdherenceReport(
        period=period,
        start_date=start_date,
        end_date=end_date,
        percentage=percentage,
        grade=adherence_grade(percentage),
        total_scheduled=scheduled,
        total_taken=taken,
        current_streak=current_streak(days),
        best_streak=best_streak(days),
        days=days,
    )

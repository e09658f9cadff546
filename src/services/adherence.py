# src/services/adherence.py
"""
Adherence aggregation over per-day scheduled/taken counts.

Day stats may be ``DayStat`` models, ORM-like objects or plain mappings
with ``scheduled`` and ``taken`` keys.
"""
from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Tuple

from src.schemas.schema_adherence import DayStat, MedicineAdherence
from src.services.reminder_status import (
    ReminderStatus,
    scheduled_time_of,
    status_or_upcoming,
)

logger = logging.getLogger(__name__)

# (lower bound inclusive, grade), highest first
GRADE_THRESHOLDS = (
    (95, "A+"),
    (90, "A"),
    (85, "B+"),
    (80, "B"),
    (75, "C+"),
    (70, "C"),
)
LOWEST_GRADE = "D"

MEDICINE_ADHERENCE_WINDOW_DAYS = 30

SETTLED = (ReminderStatus.taken, ReminderStatus.skipped, ReminderStatus.missed)


class InvalidDayStatError(ValueError):
    """Negative counts, or more doses taken than scheduled."""


def _count(stat: Any, name: str) -> int:
    if isinstance(stat, Mapping):
        value = stat.get(name)
    else:
        value = getattr(stat, name, None)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDayStatError(f"'{name}' must be an integer, got {value!r}")
    if value < 0:
        raise InvalidDayStatError(f"'{name}' cannot be negative, got {value}")
    return value


def _counts(stat: Any) -> Tuple[int, int]:
    scheduled = _count(stat, "scheduled")
    taken = _count(stat, "taken")
    if taken > scheduled:
        raise InvalidDayStatError(f"taken ({taken}) exceeds scheduled ({scheduled})")
    return scheduled, taken


def totals(day_stats: Iterable[Any]) -> Tuple[int, int]:
    total_scheduled = 0
    total_taken = 0
    for stat in day_stats:
        scheduled, taken = _counts(stat)
        total_scheduled += scheduled
        total_taken += taken
    return total_scheduled, total_taken


def percent(taken: int, scheduled: int) -> int:
    if scheduled == 0:
        return 0
    # round half up, in integers
    return (200 * taken + scheduled) // (2 * scheduled)


def adherence_percent(day_stats: Iterable[Any]) -> int:
    """Share of scheduled doses that were taken, 0..100. Empty input gives 0."""
    total_scheduled, total_taken = totals(day_stats)
    return percent(total_taken, total_scheduled)


def adherence_grade(percentage: int) -> str:
    for lower_bound, grade in GRADE_THRESHOLDS:
        if percentage >= lower_bound:
            return grade
    return LOWEST_GRADE


def _adherent_flags(day_stats: Iterable[Any]) -> List[Optional[bool]]:
    # None for days with nothing scheduled
    flags: List[Optional[bool]] = []
    for stat in day_stats:
        scheduled, taken = _counts(stat)
        flags.append(None if scheduled == 0 else taken == scheduled)
    return flags


def current_streak(day_stats: Iterable[Any]) -> int:
    """Consecutive fully-adherent days ending at the last day given."""
    streak = 0
    for adherent in reversed(_adherent_flags(day_stats)):
        if adherent is None:
            continue
        if not adherent:
            break
        streak += 1
    return streak


def best_streak(day_stats: Iterable[Any]) -> int:
    best = 0
    run = 0
    for adherent in _adherent_flags(day_stats):
        if adherent is None:
            continue
        run = run + 1 if adherent else 0
        best = max(best, run)
    return best


def build_day_stats(
    reminders: Iterable[Any],
    start: dt.date,
    end: dt.date,
    now: dt.datetime,
) -> List[DayStat]:
    """
    One DayStat per calendar day in [start, end].

    A reminder is counted as scheduled once it is settled (taken, skipped
    or missed), so doses still upcoming or inside the 30 minute window do
    not drag the percentage down.
    """
    days = {
        start + dt.timedelta(days=i): [0, 0]
        for i in range((end - start).days + 1)
    }

    for reminder in reminders:
        status = status_or_upcoming(reminder, now)
        if status not in SETTLED:
            continue
        bucket = days.get(scheduled_time_of(reminder).date())
        if bucket is None:
            continue
        bucket[0] += 1
        if status is ReminderStatus.taken:
            bucket[1] += 1

    return [
        DayStat(day=day.isoformat(), scheduled=scheduled, taken=taken)
        for day, (scheduled, taken) in days.items()
    ]


def summarize_medicine_adherence(reminders: Iterable[Any], now: dt.datetime) -> MedicineAdherence:
    counts = {status: 0 for status in SETTLED}
    for reminder in reminders:
        status = status_or_upcoming(reminder, now)
        if status in counts:
            counts[status] += 1

    taken = counts[ReminderStatus.taken]
    skipped = counts[ReminderStatus.skipped]
    missed = counts[ReminderStatus.missed]
    return MedicineAdherence(
        taken=taken,
        skipped=skipped,
        missed=missed,
        percentage=percent(taken, taken + skipped + missed),
    )


def refresh_medicine_adherence(reminder_repo, medicine, now: dt.datetime) -> Optional[int]:
    """
    Recompute the cached ``adherence_rate`` shown on medicine cards from the
    last 30 days of reminders. The caller commits.
    """
    reminders = reminder_repo.find(
        medicine.owner_uid,
        medicine_id=medicine.id,
        start=now - dt.timedelta(days=MEDICINE_ADHERENCE_WINDOW_DAYS),
        end=now,
        active_only=False,
    )
    summary = summarize_medicine_adherence(reminders, now)
    settled = summary.taken + summary.skipped + summary.missed
    medicine.adherence_rate = summary.percentage if settled else None
    logger.info(
        "[adherence] medicine_id=%s rate=%s (taken=%d skipped=%d missed=%d)",
        medicine.id, medicine.adherence_rate, summary.taken, summary.skipped, summary.missed,
    )
    return medicine.adherence_rate

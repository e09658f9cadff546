# src/services/reminder_status.py
"""
Reminder status derivation for the dashboard.

A reminder's status is never stored. It is recomputed from the scheduled
time and "now" on every request (the dashboard refreshes once a minute);
only taken / skipped are persisted, when the user logs an action.

Inputs may be ORM ``Reminder`` rows, any object exposing ``scheduled_time``,
``taken`` and ``skipped``, or plain records such as
``{"scheduledTime": "2025-01-01T08:00:00Z", "taken": False, "skipped": False}``.
"""
from __future__ import annotations

import datetime as dt
import enum
import logging
import math
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

# a dose not logged this long after its time counts as missed
MISSED_AFTER = dt.timedelta(minutes=30)

URGENT_WITHIN_MINUTES = 30
SOON_WITHIN_MINUTES = 120


class ReminderStatus(str, enum.Enum):
    taken = "taken"
    skipped = "skipped"
    missed = "missed"
    due = "due"
    upcoming = "upcoming"


class TodayView(str, enum.Enum):
    all = "all"
    pending = "pending"
    completed = "completed"
    missed = "missed"


class UpcomingView(str, enum.Enum):
    today = "today"
    tomorrow = "tomorrow"
    week = "week"


class Urgency(str, enum.Enum):
    overdue = "overdue"
    urgent = "urgent"
    soon = "soon"
    upcoming = "upcoming"


class InvalidReminderError(ValueError):
    """The reminder record cannot be evaluated (bad timestamp or flags)."""


def _field(reminder: Any, *names: str) -> Any:
    if isinstance(reminder, Mapping):
        for name in names:
            if name in reminder:
                return reminder[name]
        return None
    for name in names:
        if hasattr(reminder, name):
            return getattr(reminder, name)
    return None


def _flag(reminder: Any, name: str) -> bool:
    value = _field(reminder, name)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidReminderError(f"'{name}' must be a boolean, got {value!r}")
    return value


def parse_timestamp(value: Any) -> dt.datetime:
    if value is None:
        raise InvalidReminderError("reminder has no scheduled time")
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, str):
        try:
            return dt.datetime.fromisoformat(value.strip())
        except ValueError:
            raise InvalidReminderError(f"unparseable scheduled time: {value!r}") from None
    raise InvalidReminderError(f"unsupported scheduled time: {value!r}")


def _align(scheduled: dt.datetime, now: dt.datetime):
    # a naive value is read in the other value's zone
    if (scheduled.tzinfo is None) == (now.tzinfo is None):
        return scheduled, now
    if scheduled.tzinfo is None:
        return scheduled.replace(tzinfo=now.tzinfo), now
    return scheduled, now.replace(tzinfo=scheduled.tzinfo)


def scheduled_time_of(reminder: Any) -> dt.datetime:
    return parse_timestamp(_field(reminder, "scheduled_time", "scheduledTime"))


def evaluate_reminder_status(reminder: Any, now: dt.datetime) -> ReminderStatus:
    """
    Rules, first match wins:
      taken -> skipped -> missed (more than 30 min past) -> due (past) -> upcoming

    Exactly 30 minutes past is still ``due``. Raises InvalidReminderError when
    the scheduled time is missing/unparseable or both flags are set.
    """
    taken = _flag(reminder, "taken")
    skipped = _flag(reminder, "skipped")
    if taken and skipped:
        raise InvalidReminderError("reminder cannot be both taken and skipped")

    scheduled, now = _align(scheduled_time_of(reminder), now)

    if taken:
        return ReminderStatus.taken
    if skipped:
        return ReminderStatus.skipped
    if scheduled < now - MISSED_AFTER:
        return ReminderStatus.missed
    if scheduled < now:
        return ReminderStatus.due
    return ReminderStatus.upcoming


def status_or_upcoming(reminder: Any, now: dt.datetime) -> ReminderStatus:
    """Display fallback: an unreadable reminder is shown as upcoming."""
    try:
        return evaluate_reminder_status(reminder, now)
    except InvalidReminderError as e:
        logger.warning(
            "[reminder_status] cannot evaluate reminder id=%s (%s), showing as upcoming",
            _field(reminder, "id"), e,
        )
        return ReminderStatus.upcoming


def _sort_key(reminder: Any):
    try:
        scheduled = scheduled_time_of(reminder)
    except InvalidReminderError:
        return (1, dt.datetime.min)
    return (0, scheduled)


def minutes_until(scheduled_time: Any, now: dt.datetime) -> int:
    # "In N minutes"
    scheduled, now = _align(parse_timestamp(scheduled_time), now)
    return math.ceil((scheduled - now).total_seconds() / 60)


def minutes_overdue(scheduled_time: Any, now: dt.datetime) -> int:
    # "Overdue by N minutes"
    scheduled, now = _align(parse_timestamp(scheduled_time), now)
    return math.ceil((now - scheduled).total_seconds() / 60)


def _whole_minutes(scheduled: dt.datetime, now: dt.datetime) -> int:
    # truncated toward zero
    return int((scheduled - now).total_seconds() / 60)


def urgency_level(scheduled_time: Any, now: dt.datetime) -> Urgency:
    scheduled, now = _align(parse_timestamp(scheduled_time), now)
    diff = _whole_minutes(scheduled, now)
    if diff < 0:
        return Urgency.overdue
    if diff <= URGENT_WITHIN_MINUTES:
        return Urgency.urgent
    if diff <= SOON_WITHIN_MINUTES:
        return Urgency.soon
    return Urgency.upcoming


def time_until_label(scheduled_time: Any, now: dt.datetime) -> str:
    scheduled, now = _align(parse_timestamp(scheduled_time), now)
    if scheduled < now:
        return "Overdue"

    diff_minutes = _whole_minutes(scheduled, now)
    diff_hours = diff_minutes // 60
    if diff_minutes < 60:
        return f"{diff_minutes}m"
    if diff_hours < 24:
        return f"{diff_hours}h {diff_minutes % 60}m"
    return f"{diff_hours // 24}d {diff_hours % 24}h"


def _scheduled_at(reminder: Any, now: dt.datetime) -> bool:
    try:
        scheduled, now = _align(scheduled_time_of(reminder), now)
    except InvalidReminderError:
        return False
    return scheduled == now


def filter_reminders(reminders: Iterable[Any], view: TodayView, now: dt.datetime) -> List[Any]:
    """
    Today list views:
      pending   - not logged, scheduled strictly after now
      completed - taken
      missed    - not logged, more than 30 min past
    """
    view = TodayView(view)
    wanted = {
        TodayView.pending: ReminderStatus.upcoming,
        TodayView.completed: ReminderStatus.taken,
        TodayView.missed: ReminderStatus.missed,
    }.get(view)

    selected = [
        r for r in reminders
        if wanted is None or status_or_upcoming(r, now) is wanted
    ]
    if view is TodayView.pending:
        selected = [r for r in selected if not _scheduled_at(r, now)]
    return sorted(selected, key=_sort_key)


def summarize_reminders(reminders: Iterable[Any], now: dt.datetime) -> Dict[str, int]:
    counts = {status.value: 0 for status in ReminderStatus}
    total = 0
    for reminder in reminders:
        counts[status_or_upcoming(reminder, now).value] += 1
        total += 1
    counts["total"] = total
    return counts


def select_upcoming(
    reminders: Iterable[Any],
    view: UpcomingView,
    now: dt.datetime,
    limit: Optional[int] = None,
) -> List[Any]:
    """
    Upcoming doses that were not logged yet:
      today    - later today
      tomorrow - any time tomorrow
      week     - from now up to 7 days ahead
    """
    view = UpcomingView(view)
    tomorrow = now.date() + dt.timedelta(days=1)

    selected = []
    for reminder in reminders:
        try:
            if _flag(reminder, "taken") or _flag(reminder, "skipped"):
                continue
            scheduled, ref = _align(scheduled_time_of(reminder), now)
        except InvalidReminderError as e:
            logger.warning("[reminder_status] skipping unreadable reminder id=%s (%s)", _field(reminder, "id"), e)
            continue

        if view is UpcomingView.today:
            keep = scheduled.date() == ref.date() and scheduled > ref
        elif view is UpcomingView.tomorrow:
            keep = scheduled.date() == tomorrow
        else:
            keep = ref < scheduled <= ref + dt.timedelta(days=7)
        if keep:
            selected.append(reminder)

    selected.sort(key=_sort_key)
    if limit is not None:
        selected = selected[:limit]
    return selected

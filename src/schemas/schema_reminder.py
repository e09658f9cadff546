from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from src.models.medicine import MedicineType, Priority
from src.schemas.schema_common import ApiModel
from src.schemas.schema_medicine import Dosage
from src.services.reminder_status import ReminderStatus, TodayView, UpcomingView, Urgency


class ReminderItem(ApiModel):
    id: int
    medicine_id: int
    name: str
    dosage: Dosage
    type: MedicineType
    instructions: Optional[str] = None
    scheduled_time: datetime
    taken: bool
    skipped: bool
    taken_at: Optional[datetime] = None
    notes: Optional[str] = None
    priority: Priority
    status: ReminderStatus
    # "In N minutes" for upcoming, "Overdue by N minutes" for missed
    minutes_until: Optional[int] = None
    minutes_overdue: Optional[int] = None


class UpcomingReminderItem(ReminderItem):
    urgency: Urgency
    time_until: str


class ReminderSummary(ApiModel):
    taken: int
    skipped: int
    missed: int
    due: int
    upcoming: int
    total: int


class TodayRemindersResponse(ApiModel):
    date: date
    view: TodayView
    count: int
    reminders: List[ReminderItem]
    summary: ReminderSummary


class UpcomingRemindersResponse(ApiModel):
    view: UpcomingView
    total: int
    high_priority: int
    urgent: int
    reminders: List[UpcomingReminderItem]


class LogAdherenceRequest(ApiModel):
    taken: bool
    # when the dose was actually taken; defaults to now
    taken_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class LogAdherenceResponse(ApiModel):
    message: str
    reminder: ReminderItem

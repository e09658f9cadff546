import enum
from datetime import date
from typing import List

from pydantic import Field

from src.schemas.schema_common import ApiModel


class AdherencePeriod(str, enum.Enum):
    week = "week"
    month = "month"
    year = "year"


PERIOD_DAYS = {
    AdherencePeriod.week: 7,
    AdherencePeriod.month: 30,
    AdherencePeriod.year: 365,
}


class DayStat(ApiModel):
    day: str
    scheduled: int = Field(default=0, ge=0)
    taken: int = Field(default=0, ge=0)


class AdherenceReport(ApiModel):
    period: AdherencePeriod
    start_date: date
    end_date: date
    percentage: int
    grade: str
    total_scheduled: int
    total_taken: int
    current_streak: int
    best_streak: int
    days: List[DayStat]


class MedicineAdherence(ApiModel):
    taken: int
    skipped: int
    missed: int
    percentage: int

import enum
import re
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from src.models.medicine import Frequency, MedicineType, Priority
from src.schemas.schema_adherence import MedicineAdherence
from src.schemas.schema_common import ApiModel

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")
MAX_REMINDER_TIMES = 6


class Weekday(str, enum.Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


def _normalize_times(times: Optional[List[str]]) -> Optional[List[str]]:
    if times is None:
        return None
    normalized = []
    for value in times:
        match = TIME_PATTERN.match(value.strip())
        if not match:
            raise ValueError(f"invalid reminder time '{value}', expected HH:MM")
        hh_mm = f"{int(match.group(1)):02d}:{match.group(2)}"
        if hh_mm in normalized:
            raise ValueError(f"duplicate reminder time '{hh_mm}'")
        normalized.append(hh_mm)
    return sorted(normalized)


class Dosage(ApiModel):
    amount: str = Field(pattern=r"^[0-9]+(\.[0-9]+)?$")
    unit: str = Field(pattern=r"^(?i:mg|g|ml|iu|mcg|units?)$")


class CreateMedicine(ApiModel):
    name: str = Field(min_length=2, max_length=100)
    dosage: Dosage
    type: MedicineType = MedicineType.tablet
    frequency: Frequency = Frequency.once_daily
    # defaults to the frequency's usual times when omitted
    reminder_times: Optional[List[str]] = Field(default=None, min_length=1, max_length=MAX_REMINDER_TIMES)
    days: List[Weekday] = Field(default_factory=list)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructions: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)
    priority: Priority = Priority.medium
    stock_quantity: Optional[int] = Field(default=None, ge=0, le=1000)

    @field_validator("reminder_times")
    @classmethod
    def check_reminder_times(cls, v):
        return _normalize_times(v)


class UpdateMedicine(ApiModel):
    """Partial update: only the fields sent are merged into the medicine."""

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    dosage: Optional[Dosage] = None
    type: Optional[MedicineType] = None
    frequency: Optional[Frequency] = None
    reminder_times: Optional[List[str]] = Field(default=None, min_length=1, max_length=MAX_REMINDER_TIMES)
    days: Optional[List[Weekday]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructions: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)
    priority: Optional[Priority] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0, le=1000)
    is_active: Optional[bool] = None

    @field_validator("reminder_times")
    @classmethod
    def check_reminder_times(cls, v):
        return _normalize_times(v)

    @model_validator(mode="after")
    def validate_at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("at least one field is required")
        return self


class MedicineAlerts(ApiModel):
    expired: bool
    expiring_soon: bool
    days_until_expiry: Optional[int] = None
    low_stock: bool


class MedicineItem(ApiModel):
    id: int
    name: str
    dosage: Dosage
    type: MedicineType
    frequency: Frequency
    reminder_times: List[str]
    days: List[Weekday]
    start_date: date
    end_date: Optional[date] = None
    instructions: Optional[str] = None
    notes: Optional[str] = None
    priority: Priority
    stock_quantity: Optional[int] = None
    is_active: bool
    adherence_rate: Optional[int] = None
    alerts: MedicineAlerts
    created_at: Optional[datetime] = None


class MedicineDetail(MedicineItem):
    adherence: MedicineAdherence


class MedicineListResponse(ApiModel):
    count: int
    medicines: List[MedicineItem]


class MedicineResponse(ApiModel):
    message: str
    medicine: MedicineItem


class DeleteMedicineResponse(ApiModel):
    message: str
    id: int

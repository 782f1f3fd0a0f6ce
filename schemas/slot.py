from datetime import date as dt_date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from utils.slot_generator import parse_date

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def _coerce_date(v):
    if isinstance(v, str):
        return parse_date(v)
    return v


# Slot: Create/upsert (admin POST /slots)
class SlotCreate(BaseModel):
    date: dt_date
    time: str = Field(pattern=_TIME_PATTERN)
    price: int = Field(ge=0)
    total_capacity: int = Field(default=3, ge=1)
    is_enabled: bool = True

    @field_validator("date", mode="before")
    @classmethod
    def parse_any_date(cls, v):
        return _coerce_date(v)


# Slot: Update (admin PUT /slots/{id})
class SlotUpdate(BaseModel):
    time: Optional[str] = Field(default=None, pattern=_TIME_PATTERN)
    price: Optional[int] = Field(default=None, ge=0)
    total_capacity: Optional[int] = Field(default=None, ge=1)
    is_enabled: Optional[bool] = None


# Slot: Bulk generation (admin POST /slots/bulk)
class SlotBulkCreate(BaseModel):
    start_date: dt_date
    end_date: dt_date
    start_time: str = Field(pattern=_TIME_PATTERN)
    end_time: str = Field(pattern=_TIME_PATTERN)
    interval: int = Field(ge=30, le=180)
    price: int = Field(gt=0)
    capacity: int = Field(ge=1)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_any_date(cls, v):
        return _coerce_date(v)

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

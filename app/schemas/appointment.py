# app/schemas/appointment.py

from __future__ import annotations
from datetime import date as _Date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from app.core.business import AppointmentStatus


class CamelModel(BaseModel):
    """JSON uses camelCase (startTime, therapyId); Python uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return v
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class AppointmentCreate(CamelModel):
    date: _Date = Field(..., description="Calendar date of the slot")
    start_time: datetime = Field(..., description="ISO8601; naive values are read as UTC")
    end_time: datetime
    therapy_id: str = Field(..., min_length=1)
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_times(cls, v):
        return _as_utc(v)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be later than startTime")
        return self


class AppointmentUpdate(CamelModel):
    date: Optional[_Date] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None

    # Omit a field to leave it unchanged; null is not a value for these columns
    @field_validator("date", "start_time", "end_time", "status", mode="before")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_times(cls, v):
        return _as_utc(v)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("endTime must be later than startTime")
        return self


class CancellationRequest(CamelModel):
    notes: Optional[str] = Field(None, description="Reason for cancelling")


class CancellationDecision(CamelModel):
    new_status: str = Field(..., examples=["AVAILABLE", "CANCELLED"])


class AssignRequest(CamelModel):
    appointment_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)


class TherapySummary(CamelModel):
    id: str
    title: str


class UserSummary(CamelModel):
    id: str
    name: str
    email: str


class AppointmentUserOut(CamelModel):
    id: str
    appointment_id: str
    user_id: str
    approved: bool
    created_at: datetime
    user: Optional[UserSummary] = None


class AppointmentOut(CamelModel):
    id: str
    date: _Date
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    therapy_id: str
    therapy: Optional[TherapySummary] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    users: list[AppointmentUserOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class DeletedOut(CamelModel):
    id: str


class CompletionResult(CamelModel):
    message: str
    updated: int

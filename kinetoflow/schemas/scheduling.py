from __future__ import annotations

from datetime import datetime, time
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from kinetoflow.models import Appointment, AppointmentStatus, DayOfWeek
from kinetoflow.schemas.common import ORMModel


class AppointmentCreate(BaseModel):
    patient_id: UUID
    service_id: UUID
    scheduled_start: datetime
    scheduled_end: datetime
    notes: str | None = None
    plan_item_id: UUID | None = None


class AppointmentCancel(BaseModel):
    status: AppointmentStatus
    reason: str | None = Field(default=None, max_length=1000)


class AppointmentOut(ORMModel):
    id: UUID
    tenant_id: UUID
    patient_id: UUID
    patient_name: str | None = None
    medic_id: UUID
    service_id: UUID
    service_name: str | None = None
    plan_item_id: UUID | None = None
    status: AppointmentStatus
    scheduled_start: datetime
    scheduled_end: datetime
    actual_start: datetime | None = None
    actual_end: datetime | None = None
    notes: str | None = None
    session_consumed: bool

    @classmethod
    def from_entity(cls, appointment: Appointment) -> "AppointmentOut":
        out = cls.model_validate(appointment)
        out.patient_name = appointment.patient.name
        out.service_name = appointment.service.name
        return out


class TimeBlockCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    reason: str | None = Field(default=None, max_length=255)


class TimeBlockOut(ORMModel):
    id: UUID
    medic_id: UUID
    start_time: datetime
    end_time: datetime
    reason: str | None = None


class WorkingHoursIn(BaseModel):
    day_of_week: DayOfWeek
    start_time: time
    end_time: time


class WorkingHoursOut(ORMModel):
    id: UUID
    day_of_week: DayOfWeek
    start_time: time
    end_time: time


class CalendarEvent(BaseModel):
    """Appointment or time block merged into one calendar feed."""

    id: str
    kind: Literal["appointment", "block"]
    title: str
    start: datetime
    end: datetime
    color: str
    status: AppointmentStatus | None = None
    patient_id: UUID | None = None
    patient_name: str | None = None
    service_id: UUID | None = None
    service_name: str | None = None
    notes: str | None = None

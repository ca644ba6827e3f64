from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kinetoflow.models.base import Base, TimestampMixin
from kinetoflow.models.plan import PlanItem
from kinetoflow.models.service import Service
from kinetoflow.models.user import User


class AppointmentStatus(str, enum.Enum):
    """Possible statuses for an appointment lifecycle."""

    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED_BY_PATIENT = "CANCELLED_BY_PATIENT"
    CANCELLED_BY_MEDIC = "CANCELLED_BY_MEDIC"
    NO_SHOW = "NO_SHOW"


# Statuses that occupy the calendar for overlap purposes.
BLOCKING_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED)
CANCELLED_STATUSES = (
    AppointmentStatus.CANCELLED_BY_PATIENT,
    AppointmentStatus.CANCELLED_BY_MEDIC,
)


class Appointment(Base, TimestampMixin):
    """Appointment between a patient and a medic for one service."""

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("scheduled_end > scheduled_start", name="end_after_start"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), index=True
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    medic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="RESTRICT"), index=True
    )
    plan_item_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("plan_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status"),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )
    scheduled_start: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    scheduled_end: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    actual_start: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    actual_end: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    session_consumed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    patient: Mapped[User] = relationship(User, foreign_keys="Appointment.patient_id")
    medic: Mapped[User] = relationship(User, foreign_keys="Appointment.medic_id")
    service: Mapped[Service] = relationship(Service)
    plan_item: Mapped[PlanItem | None] = relationship(PlanItem)

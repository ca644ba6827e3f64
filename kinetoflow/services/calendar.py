"""Medic calendar: time blocks, weekly working hours and the merged event feed."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, time
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from kinetoflow.core.clock import to_storage
from kinetoflow.core.errors import BadRequestError, ForbiddenError
from kinetoflow.models import (
    Appointment,
    AppointmentStatus,
    DayOfWeek,
    MedicWorkingHours,
    TimeBlock,
    User,
    UserRole,
)
from kinetoflow.schemas.scheduling import CalendarEvent, WorkingHoursIn
from kinetoflow.services.access import get_scoped, require_role, require_tenant

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    AppointmentStatus.SCHEDULED: "#3498DB",
    AppointmentStatus.COMPLETED: "#2ECC71",
    AppointmentStatus.CANCELLED_BY_MEDIC: "#E74C3C",
    AppointmentStatus.CANCELLED_BY_PATIENT: "#E74C3C",
    AppointmentStatus.NO_SHOW: "#F39C12",
}
BLOCK_COLOR = "#6c757d"
BLOCK_TITLE = "Blocked Time"


def _require_medic(actor: User) -> UUID:
    require_role(actor, UserRole.MEDIC)
    return require_tenant(actor)


# Time blocks


def create_time_block(
    db: Session,
    *,
    actor: User,
    start: datetime,
    end: datetime,
    reason: str | None = None,
) -> TimeBlock:
    """Mark an interval as unavailable. Existing appointments are left alone."""

    tenant_id = _require_medic(actor)
    start = to_storage(start)
    end = to_storage(end)
    if end <= start:
        raise BadRequestError("Time block end must be after its start")

    block = TimeBlock(
        tenant_id=tenant_id,
        medic_id=actor.id,
        start_time=start,
        end_time=end,
        reason=reason.strip() if reason and reason.strip() else None,
    )
    db.add(block)
    db.flush()
    logger.info("time block created", extra={"time_block_id": str(block.id)})
    return block


def delete_time_block(db: Session, *, actor: User, block_id: UUID) -> None:
    _require_medic(actor)
    block = get_scoped(db, TimeBlock, block_id, actor=actor, noun="Time block")
    if block.medic_id != actor.id:
        raise ForbiddenError("You can only delete your own time blocks")
    db.delete(block)
    db.flush()
    logger.info("time block deleted", extra={"time_block_id": str(block_id)})


# Calendar feed


def _appointment_event(appointment: Appointment) -> CalendarEvent:
    return CalendarEvent(
        id=f"appt-{appointment.id}",
        kind="appointment",
        title=f"{appointment.service.name} - {appointment.patient.name}",
        start=appointment.scheduled_start,
        end=appointment.scheduled_end,
        color=STATUS_COLORS.get(appointment.status, STATUS_COLORS[AppointmentStatus.SCHEDULED]),
        status=appointment.status,
        patient_id=appointment.patient_id,
        patient_name=appointment.patient.name,
        service_id=appointment.service_id,
        service_name=appointment.service.name,
        notes=appointment.notes,
    )


def _block_event(block: TimeBlock) -> CalendarEvent:
    return CalendarEvent(
        id=f"block-{block.id}",
        kind="block",
        title=block.reason or BLOCK_TITLE,
        start=block.start_time,
        end=block.end_time,
        color=BLOCK_COLOR,
        notes=block.reason,
    )


def get_calendar_events(
    db: Session, *, actor: User, start: datetime, end: datetime
) -> list[CalendarEvent]:
    """Appointments and time blocks of the medic touching ``[start, end]``."""

    _require_medic(actor)
    start = to_storage(start)
    end = to_storage(end)
    if start > end:
        raise BadRequestError("Calendar range start must not be after its end")

    appointments = db.execute(
        select(Appointment)
        .where(
            Appointment.medic_id == actor.id,
            Appointment.scheduled_start <= end,
            Appointment.scheduled_end >= start,
        )
        .order_by(Appointment.scheduled_start)
    ).scalars()
    blocks = db.execute(
        select(TimeBlock)
        .where(
            TimeBlock.medic_id == actor.id,
            TimeBlock.start_time <= end,
            TimeBlock.end_time >= start,
        )
        .order_by(TimeBlock.start_time)
    ).scalars()

    events = [_appointment_event(appointment) for appointment in appointments]
    events.extend(_block_event(block) for block in blocks)
    events.sort(key=lambda event: (event.start, event.id))
    return events


# Working hours


def _validate_window(start_time: time, end_time: time) -> None:
    if start_time >= end_time:
        raise BadRequestError("Working hours start time must be before end time")


def list_working_hours(db: Session, *, actor: User) -> list[MedicWorkingHours]:
    _require_medic(actor)
    rows = db.execute(
        select(MedicWorkingHours).where(MedicWorkingHours.medic_id == actor.id)
    ).scalars()
    return sorted(rows, key=lambda row: row.day_of_week.ordinal)


def _upsert_day(db: Session, medic: User, entry: WorkingHoursIn) -> MedicWorkingHours:
    _validate_window(entry.start_time, entry.end_time)
    row = db.execute(
        select(MedicWorkingHours).where(
            MedicWorkingHours.medic_id == medic.id,
            MedicWorkingHours.day_of_week == entry.day_of_week,
        )
    ).scalars().first()
    if row is None:
        row = MedicWorkingHours(medic_id=medic.id, day_of_week=entry.day_of_week)
        db.add(row)
    row.start_time = entry.start_time
    row.end_time = entry.end_time
    return row


def set_working_day(db: Session, *, actor: User, entry: WorkingHoursIn) -> MedicWorkingHours:
    _require_medic(actor)
    row = _upsert_day(db, actor, entry)
    db.flush()
    logger.info("working hours set", extra={"day_of_week": entry.day_of_week.value})
    return row


def set_working_hours_bulk(
    db: Session, *, actor: User, entries: Sequence[WorkingHoursIn]
) -> list[MedicWorkingHours]:
    """Replace the whole week with ``entries``."""

    _require_medic(actor)
    days = [entry.day_of_week for entry in entries]
    if len(set(days)) != len(days):
        raise BadRequestError("Each day of the week may only appear once")
    for entry in entries:
        _validate_window(entry.start_time, entry.end_time)

    db.execute(delete(MedicWorkingHours).where(MedicWorkingHours.medic_id == actor.id))
    db.flush()
    rows = [_upsert_day(db, actor, entry) for entry in entries]
    db.flush()
    logger.info("working hours replaced", extra={"days": len(rows)})
    return sorted(rows, key=lambda row: row.day_of_week.ordinal)


def delete_working_day(db: Session, *, actor: User, day_of_week: DayOfWeek) -> None:
    _require_medic(actor)
    db.execute(
        delete(MedicWorkingHours).where(
            MedicWorkingHours.medic_id == actor.id,
            MedicWorkingHours.day_of_week == day_of_week,
        )
    )
    db.flush()
    logger.info("working hours removed", extra={"day_of_week": day_of_week.value})


def clear_working_hours(db: Session, *, actor: User) -> None:
    _require_medic(actor)
    db.execute(delete(MedicWorkingHours).where(MedicWorkingHours.medic_id == actor.id))
    db.flush()
    logger.info("working hours cleared")

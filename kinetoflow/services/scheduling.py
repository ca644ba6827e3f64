"""Appointment booking, cancellation and deletion.

All intervals are half-open: ``[start, end)``. Two appointments that merely
touch (one ends when the next starts) do not conflict.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from kinetoflow.core.clock import to_storage, utcnow
from kinetoflow.core.errors import BadRequestError, ForbiddenError, NotFoundError
from kinetoflow.models import (
    Appointment,
    AppointmentStatus,
    PlanItem,
    Service,
    TimeBlock,
    User,
    UserRole,
)
from kinetoflow.models.appointment import BLOCKING_STATUSES, CANCELLED_STATUSES
from kinetoflow.schemas.scheduling import AppointmentCreate
from kinetoflow.services.access import (
    ensure_assigned_medic,
    get_scoped,
    get_user_with_role,
    require_role,
    require_tenant,
)

logger = logging.getLogger(__name__)


def overlaps(a: datetime, b: datetime, c: datetime, d: datetime) -> bool:
    """Return whether ``[a, b)`` and ``[c, d)`` intersect."""

    return a < d and c < b


def _lock_user(db: Session, user_id: UUID) -> None:
    db.execute(select(User.id).where(User.id == user_id).with_for_update()).first()


def _time_block_conflict(
    db: Session, medic_id: UUID, start: datetime, end: datetime
) -> TimeBlock | None:
    stmt = select(TimeBlock).where(
        TimeBlock.medic_id == medic_id,
        TimeBlock.start_time < end,
        TimeBlock.end_time > start,
    )
    return db.execute(stmt).scalars().first()


def _appointment_conflict(
    db: Session,
    start: datetime,
    end: datetime,
    *,
    patient_id: UUID | None = None,
    medic_id: UUID | None = None,
) -> Appointment | None:
    stmt = select(Appointment).where(
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.scheduled_start < end,
        Appointment.scheduled_end > start,
    )
    if patient_id is not None:
        stmt = stmt.where(Appointment.patient_id == patient_id)
    if medic_id is not None:
        stmt = stmt.where(Appointment.medic_id == medic_id)
    return db.execute(stmt).scalars().first()


def _check_plan_item(
    db: Session, item_id: UUID, *, patient: User, service: Service
) -> PlanItem:
    item = db.get(PlanItem, item_id)
    if item is None or item.plan.tenant_id != patient.tenant_id:
        raise NotFoundError("Plan item not found")
    if item.plan.patient_id != patient.id:
        raise BadRequestError("Plan item does not belong to this patient")
    if not item.plan.is_live:
        raise BadRequestError("The patient's plan is not active")
    if not item.is_live:
        raise BadRequestError("The plan item is not active")
    if item.service_id != service.id:
        raise BadRequestError("Plan item is for a different service")
    if item.remaining_quantity <= 0:
        raise BadRequestError("No sessions remaining on this plan item")
    return item


def create_appointment(
    db: Session,
    *,
    actor: User,
    payload: AppointmentCreate,
    now: datetime | None = None,
) -> Appointment:
    """Book an appointment for one of the medic's patients.

    Checks run in a fixed order and the first failure aborts: the time range,
    the patient, the service, the plan item, the medic's time blocks, then
    overlapping appointments of the patient and of the medic. No session is
    consumed here; reconciliation does that once the appointment has ended.
    """

    current = to_storage(now) if now else utcnow()
    start = to_storage(payload.scheduled_start)
    end = to_storage(payload.scheduled_end)
    if end <= start:
        raise BadRequestError("Appointment end time must be after its start time")
    if start < current:
        raise BadRequestError("Appointments cannot be scheduled in the past")

    require_role(actor, UserRole.MEDIC)
    require_tenant(actor)
    patient = get_user_with_role(
        db, payload.patient_id, UserRole.PATIENT, actor=actor, for_update=True
    )
    if not patient.is_active:
        raise BadRequestError("Patient account is not active")
    ensure_assigned_medic(actor, patient)
    _lock_user(db, actor.id)

    service = get_scoped(db, Service, payload.service_id, actor=actor, noun="Service")
    if not service.is_active:
        raise BadRequestError(f"Service '{service.name}' is not active")

    plan_item = None
    if payload.plan_item_id is not None:
        plan_item = _check_plan_item(db, payload.plan_item_id, patient=patient, service=service)

    block = _time_block_conflict(db, actor.id, start, end)
    if block is not None:
        raise BadRequestError("The requested time overlaps one of your blocked periods")
    if _appointment_conflict(db, start, end, patient_id=patient.id) is not None:
        raise BadRequestError("Patient has an overlapping appointment")
    if _appointment_conflict(db, start, end, medic_id=actor.id) is not None:
        raise BadRequestError("You already have an appointment at this time")

    appointment = Appointment(
        tenant_id=actor.tenant_id,
        patient=patient,
        medic=actor,
        service=service,
        plan_item=plan_item,
        status=AppointmentStatus.SCHEDULED,
        scheduled_start=start,
        scheduled_end=end,
        notes=payload.notes,
        session_consumed=False,
    )
    db.add(appointment)
    db.flush()
    logger.info(
        "appointment created",
        extra={
            "appointment_id": str(appointment.id),
            "patient_id": str(patient.id),
            "plan_item_id": str(plan_item.id) if plan_item else None,
        },
    )
    return appointment


def _get_own_appointment(db: Session, actor: User, appointment_id: UUID) -> Appointment:
    require_role(actor, UserRole.MEDIC)
    require_tenant(actor)
    appointment = get_scoped(
        db, Appointment, appointment_id, actor=actor, noun="Appointment", for_update=True
    )
    if appointment.medic_id != actor.id:
        raise ForbiddenError("You can only manage your own appointments")
    return appointment


def cancel_appointment(
    db: Session,
    *,
    actor: User,
    appointment_id: UUID,
    status: AppointmentStatus,
    reason: str | None = None,
) -> Appointment:
    """Move a scheduled appointment into one of the cancelled states.

    A non-blank reason is appended to the notes on its own line. Cancelling
    never touches the plan item.
    """

    if status not in CANCELLED_STATUSES:
        raise BadRequestError("Status must be CANCELLED_BY_MEDIC or CANCELLED_BY_PATIENT")
    appointment = _get_own_appointment(db, actor, appointment_id)
    if appointment.status != AppointmentStatus.SCHEDULED:
        raise BadRequestError(
            f"Only scheduled appointments can be cancelled (current status: "
            f"{appointment.status.value})"
        )

    appointment.status = status
    if reason and reason.strip():
        line = f"Cancellation Reason ({status.value}): {reason.strip()}"
        appointment.notes = f"{appointment.notes}\n{line}" if appointment.notes else line
    db.flush()
    logger.info(
        "appointment cancelled",
        extra={"appointment_id": str(appointment.id), "status": status.value},
    )
    return appointment


def delete_appointment(
    db: Session, *, actor: User, appointment_id: UUID, now: datetime | None = None
) -> None:
    """Hard-delete one of the medic's future appointments."""

    current = to_storage(now) if now else utcnow()
    appointment = _get_own_appointment(db, actor, appointment_id)
    if appointment.scheduled_start <= current:
        raise BadRequestError("Past or ongoing appointments cannot be deleted")

    db.delete(appointment)
    db.flush()
    logger.info("appointment deleted", extra={"appointment_id": str(appointment_id)})

"""Retroactive session consumption for appointments that have ended.

Each run selects ended, unconsumed appointments linked to a plan item and
processes them one by one, each in its own session and transaction. Rows are
claimed with ``SELECT ... FOR UPDATE SKIP LOCKED`` so concurrent workers never
process the same appointment twice, and an appointment is never reconsidered
once ``session_consumed`` is set.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from kinetoflow.core.clock import to_storage, utcnow
from kinetoflow.models import Appointment, AppointmentStatus, PlanItem
from kinetoflow.models.appointment import BLOCKING_STATUSES

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class Outcome(str, enum.Enum):
    CONSUMED = "consumed"
    EXHAUSTED = "exhausted"
    SKIPPED = "skipped"


@dataclass
class ReconciliationReport:
    """Counters describing a single reconciliation run."""

    processed: int = 0
    consumed: int = 0
    exhausted: int = 0
    failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def _pending_filter(now: datetime):
    return (
        Appointment.scheduled_end <= now,
        Appointment.session_consumed.is_(False),
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.plan_item_id.is_not(None),
    )


def find_pending_appointment_ids(db: Session, now: datetime) -> list[UUID]:
    stmt = (
        select(Appointment.id)
        .where(*_pending_filter(now))
        .order_by(Appointment.scheduled_end, Appointment.id)
    )
    return list(db.execute(stmt).scalars())


def consume_session(db: Session, appointment_id: UUID, now: datetime) -> Outcome:
    """Draw one session for an ended appointment, if it is still pending."""

    appointment = db.execute(
        select(Appointment)
        .where(Appointment.id == appointment_id, *_pending_filter(now))
        .with_for_update(skip_locked=True)
    ).scalars().first()
    if appointment is None:
        return Outcome.SKIPPED

    item = db.execute(
        select(PlanItem).where(PlanItem.id == appointment.plan_item_id).with_for_update()
    ).scalars().first()

    appointment.session_consumed = True
    if item is None or not item.can_decrement:
        logger.warning(
            "session not decremented",
            extra={
                "appointment_id": str(appointment.id),
                "plan_item_id": str(appointment.plan_item_id),
                "remaining": item.remaining_quantity if item else None,
            },
        )
        return Outcome.EXHAUSTED

    item.remaining_quantity -= 1
    if appointment.status == AppointmentStatus.SCHEDULED:
        appointment.status = AppointmentStatus.COMPLETED
    logger.info(
        "session consumed",
        extra={
            "appointment_id": str(appointment.id),
            "plan_item_id": str(item.id),
            "remaining": item.remaining_quantity,
        },
    )
    return Outcome.CONSUMED


def reconcile_sessions(
    session_factory: SessionFactory, now: datetime | None = None
) -> ReconciliationReport:
    """Process every pending appointment that ended at or before ``now``."""

    current = to_storage(now) if now else utcnow()
    report = ReconciliationReport()

    with session_factory() as db:
        appointment_ids = find_pending_appointment_ids(db, current)

    if not appointment_ids:
        logger.info("no appointments pending session reconciliation")
        return report

    for appointment_id in appointment_ids:
        db = session_factory()
        try:
            outcome = consume_session(db, appointment_id, current)
            db.commit()
        except Exception:
            db.rollback()
            report.failed += 1
            logger.exception(
                "session reconciliation failed",
                extra={"appointment_id": str(appointment_id)},
            )
            continue
        finally:
            db.close()

        if outcome is Outcome.SKIPPED:
            continue
        report.processed += 1
        if outcome is Outcome.CONSUMED:
            report.consumed += 1
        else:
            report.exhausted += 1

    logger.info("session reconciliation finished", extra=report.as_dict())
    return report

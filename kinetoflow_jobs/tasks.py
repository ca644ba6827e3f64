from __future__ import annotations

import smtplib
from typing import Any

from celery.utils.log import get_task_logger

from kinetoflow.db.session import SessionLocal
from kinetoflow.services.email_client import send_email
from kinetoflow.services.reconciliation import reconcile_sessions as run_reconciliation
from kinetoflow_jobs.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="jobs.reconcile_sessions")
def reconcile_sessions() -> dict[str, int]:
    """Consume plan sessions for appointments that have ended."""

    report = run_reconciliation(SessionLocal)
    logger.info(
        "Reconciliation processed %s appointments (%s consumed, %s exhausted, %s failed)",
        report.processed,
        report.consumed,
        report.exhausted,
        report.failed,
    )
    return report.as_dict()


@celery_app.task(name="jobs.deliver_email")
def deliver_email(to: str, subject: str, body: str) -> dict[str, Any]:
    """Send a transactional email. Failures are logged, never raised."""

    try:
        message_id = send_email(to, subject, body)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to deliver email %r to %s: %s", subject, to, exc)
        return {"to": to, "delivered": False, "error": str(exc)}
    logger.info("Delivered email %r to %s", subject, to)
    return {"to": to, "delivered": True, "message_id": message_id}

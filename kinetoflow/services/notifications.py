"""Fire-and-forget email dispatch through the background worker.

Emails are held on the SQLAlchemy session and only handed to the worker once
the transaction that produced them commits. A rollback discards them.
"""

from __future__ import annotations

import logging

from sqlalchemy import event
from sqlalchemy.orm import Session

from kinetoflow.core.config import settings
from kinetoflow.services.email_templates import RenderedEmail, render_invitation, render_welcome
from kinetoflow_jobs.tasks import deliver_email

logger = logging.getLogger(__name__)

_PENDING_KEY = "pending_emails"


def invitation_url(token: str) -> str:
    return f"{settings.frontend_base_url.rstrip('/')}/accept-invitation/{token}"


def login_url() -> str:
    return f"{settings.frontend_base_url.rstrip('/')}/login"


def _enqueue(email: RenderedEmail) -> None:
    try:
        deliver_email.delay(email.to, email.subject, email.body)
    except Exception:
        logger.exception("failed to enqueue email", extra={"to": email.to, "subject": email.subject})


def _queue_after_commit(db: Session, email: RenderedEmail) -> None:
    db.info.setdefault(_PENDING_KEY, []).append(email)


@event.listens_for(Session, "after_commit")
def _dispatch_pending(session: Session) -> None:
    for email in session.info.pop(_PENDING_KEY, []):
        _enqueue(email)


@event.listens_for(Session, "after_rollback")
def _discard_pending(session: Session) -> None:
    discarded = session.info.pop(_PENDING_KEY, [])
    if discarded:
        logger.info("pending emails discarded", extra={"count": len(discarded)})


def send_invitation_email(
    db: Session,
    *,
    to: str,
    token: str,
    inviter_name: str | None,
    company_name: str | None,
    role_label: str,
) -> None:
    _queue_after_commit(
        db,
        render_invitation(
            to=to,
            inviter_name=inviter_name,
            company_name=company_name,
            role_label=role_label,
            invitation_url=invitation_url(token),
            ttl_minutes=settings.invitation_token_ttl_minutes,
        ),
    )


def send_welcome_email(db: Session, *, to: str, name: str) -> None:
    _queue_after_commit(db, render_welcome(to=to, name=name, login_url=login_url()))

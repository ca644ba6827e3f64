"""Invitation-based onboarding.

An invitation is an inactive user row carrying a one-time token. Accepting
the invitation sets the user's name and password, activates the account and
clears the token.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from kinetoflow.core.clock import to_storage, utcnow
from kinetoflow.core.config import settings
from kinetoflow.core.errors import (
    BadRequestError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationFailed,
)
from kinetoflow.core.security import (
    generate_invitation_token,
    hash_password,
    placeholder_password_hash,
)
from kinetoflow.models import Company, User, UserRole
from kinetoflow.schemas.invitations import InvitationDetails
from kinetoflow.services import notifications
from kinetoflow.services.access import (
    ensure_assigned_medic,
    get_user_with_role,
    require_role,
    require_tenant,
)
from kinetoflow.services.users import find_user_by_email, normalize_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _resolve_invite_company(
    db: Session, actor: User, role: UserRole, tenant_id: UUID | None
) -> Company | None:
    """Apply the who-may-invite-whom rules and return the invitee's company."""

    if role == UserRole.PLATFORM_ADMIN:
        raise BadRequestError("Platform administrators cannot be invited")

    if actor.role == UserRole.MEDIC:
        if role != UserRole.PATIENT:
            raise BadRequestError("Medics can only invite patients")
        return db.get(Company, require_tenant(actor))

    if actor.role == UserRole.TENANT_ADMIN:
        if role not in (UserRole.MEDIC, UserRole.TENANT_ADMIN):
            raise BadRequestError("Company administrators can only invite medics or administrators")
        return db.get(Company, require_tenant(actor))

    if actor.role == UserRole.PLATFORM_ADMIN:
        if role not in (UserRole.TENANT_ADMIN, UserRole.MEDIC):
            raise BadRequestError(f"Platform administrators cannot invite role {role.value}")
        if tenant_id is None:
            if role == UserRole.MEDIC:
                raise BadRequestError("A company is required when inviting a medic")
            return None
        company = db.get(Company, tenant_id)
        if company is None:
            raise NotFoundError("Company not found")
        return company

    raise ForbiddenError("You do not have permission to send invitations")


def send_invitation(
    db: Session,
    *,
    actor: User,
    email: str,
    role: UserRole,
    tenant_id: UUID | None = None,
    now: datetime | None = None,
) -> User:
    """Create or refresh a pending account and email its acceptance link."""

    company = _resolve_invite_company(db, actor, role, tenant_id)
    email = normalize_email(email)

    invitee = find_user_by_email(db, email)
    if invitee is not None and invitee.is_active:
        raise BadRequestError("An active user with this email already exists")
    if invitee is None:
        invitee = User(
            email=email,
            name=email,
            password_hash=placeholder_password_hash(),
            role=role,
            is_active=False,
        )
        db.add(invitee)
    elif invitee.invitation_token is not None:
        logger.warning("overwriting pending invitation", extra={"invitee_id": str(invitee.id)})

    current = to_storage(now) if now else utcnow()
    invitee.role = role
    invitee.is_active = False
    invitee.company = company
    invitee.assigned_medic = actor if actor.role == UserRole.MEDIC else None
    invitee.invited_by = actor
    invitee.invitation_token = generate_invitation_token()
    invitee.invitation_expires_at = current + timedelta(
        minutes=settings.invitation_token_ttl_minutes
    )
    db.flush()

    logger.info(
        "invitation sent",
        extra={
            "invitee_id": str(invitee.id),
            "role": role.value,
            "company_id": str(company.id) if company else None,
        },
    )
    notifications.send_invitation_email(
        db,
        to=invitee.email,
        token=invitee.invitation_token,
        inviter_name=actor.name,
        company_name=company.name if company else None,
        role_label=role.label,
    )
    return invitee


def _find_pending(db: Session, token: str, now: datetime | None) -> User:
    if not token or not token.strip():
        raise BadRequestError("Invitation token cannot be empty")
    invitee = db.execute(
        select(User).where(User.invitation_token == token.strip()).with_for_update()
    ).scalars().first()
    if invitee is None:
        raise NotFoundError("Invitation not found or no longer valid")
    if invitee.is_active:
        raise InvalidStateError("This invitation has already been accepted")
    current = to_storage(now) if now else utcnow()
    if invitee.invitation_expires_at is not None and invitee.invitation_expires_at < current:
        raise InvalidStateError("This invitation has expired")
    return invitee


def lookup_invitation(
    db: Session, *, token: str, now: datetime | None = None
) -> InvitationDetails:
    invitee = _find_pending(db, token, now)
    return InvitationDetails(
        email=invitee.email,
        role=invitee.role,
        tenant_name=invitee.company.name if invitee.company else None,
        inviter_name=invitee.invited_by.name if invitee.invited_by else None,
    )


def accept_invitation(
    db: Session,
    *,
    token: str,
    name: str,
    password: str,
    now: datetime | None = None,
) -> User:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(
            "Password is too short",
            details={"password": f"must be at least {MIN_PASSWORD_LENGTH} characters"},
        )
    invitee = _find_pending(db, token, now)

    invitee.name = name.strip()
    invitee.password_hash = hash_password(password)
    invitee.is_active = True
    invitee.invitation_token = None
    invitee.invitation_expires_at = None
    db.flush()

    logger.info("invitation accepted", extra={"invitee_id": str(invitee.id)})
    notifications.send_welcome_email(db, to=invitee.email, name=invitee.name)
    return invitee


def cancel_invitation(db: Session, *, actor: User, user_id: UUID) -> User:
    """Withdraw a medic's pending patient invitation. The user row stays re-invitable."""

    require_role(actor, UserRole.MEDIC)
    require_tenant(actor)
    invitee = get_user_with_role(db, user_id, UserRole.PATIENT, actor=actor, for_update=True)
    ensure_assigned_medic(actor, invitee)
    if invitee.is_active or invitee.invitation_token is None:
        raise InvalidStateError("This user has no pending invitation")

    invitee.invitation_token = None
    invitee.invitation_expires_at = None
    db.flush()
    logger.info("invitation cancelled", extra={"invitee_id": str(invitee.id)})
    return invitee

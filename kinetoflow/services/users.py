"""Identity store: authentication, profiles and tenant user management."""

from __future__ import annotations

import logging
from uuid import UUID

import jwt
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kinetoflow.core.errors import BadRequestError, UnauthenticatedError
from kinetoflow.core.security import create_access_token, decode_access_token, verify_password
from kinetoflow.models import User, UserRole
from kinetoflow.services.access import (
    ensure_not_administrative,
    get_scoped,
    get_user_with_role,
    require_role,
    require_tenant,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user_by_email(db: Session, email: str) -> User | None:
    stmt = select(User).where(func.lower(User.email) == normalize_email(email))
    return db.execute(stmt).scalars().first()


def authenticate(db: Session, *, email: str, password: str) -> tuple[str, User]:
    """Check credentials and issue a bearer token.

    Unknown emails, wrong passwords and inactive accounts all fail with the
    same message.
    """

    user = find_user_by_email(db, email)
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        logger.warning("login refused", extra={"email": normalize_email(email)})
        raise UnauthenticatedError(INVALID_CREDENTIALS)

    token = create_access_token(
        email=user.email,
        user_id=user.id,
        role=user.role.value,
        tenant_id=user.tenant_id,
    )
    logger.info("login succeeded", extra={"account_id": str(user.id)})
    return token, user


def resolve_actor(db: Session, token: str) -> User:
    """Validate a bearer token and load the active user it names."""

    try:
        claims = decode_access_token(token)
        user_id = UUID(str(claims["user_id"]))
    except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
        logger.info("bearer token rejected", extra={"reason": type(exc).__name__})
        raise UnauthenticatedError("Invalid or expired token") from exc

    user = db.get(User, user_id)
    if user is None or not user.is_active or user.email != claims.get("sub"):
        raise UnauthenticatedError("Invalid or expired token")
    return user


def update_profile(db: Session, *, actor: User, name: str) -> User:
    actor.name = name.strip()
    db.flush()
    logger.info("profile updated")
    return actor


def list_tenant_users(db: Session, *, actor: User, role: UserRole) -> list[User]:
    """List users of the admin's tenant holding ``role``, by name."""

    require_role(actor, UserRole.TENANT_ADMIN)
    tenant_id = require_tenant(actor)
    stmt = (
        select(User)
        .where(User.tenant_id == tenant_id, User.role == role)
        .order_by(User.name, User.email)
    )
    return list(db.execute(stmt).scalars())


def set_user_active(db: Session, *, actor: User, user_id: UUID, active: bool) -> User:
    """Toggle a medic or patient account.

    Administrative accounts (the actor included) are never toggled here, and
    an account still waiting on its invitation can only be activated by
    accepting it.
    """

    require_role(actor, UserRole.TENANT_ADMIN)
    require_tenant(actor)
    target = get_scoped(db, User, user_id, actor=actor, noun="User", for_update=True)
    ensure_not_administrative(target)
    if active and target.invitation_token is not None:
        raise BadRequestError("User has a pending invitation and cannot be activated manually")

    target.is_active = active
    db.flush()
    logger.info(
        "user status changed",
        extra={"target_id": str(target.id), "active": active},
    )
    return target


def assign_medic(
    db: Session, *, actor: User, patient_id: UUID, medic_id: UUID | None
) -> User:
    """Assign (or with ``None`` unassign) the medic responsible for a patient."""

    require_role(actor, UserRole.TENANT_ADMIN)
    require_tenant(actor)
    patient = get_user_with_role(db, patient_id, UserRole.PATIENT, actor=actor, for_update=True)

    if medic_id is None:
        patient.assigned_medic_id = None
    else:
        medic = get_user_with_role(db, medic_id, UserRole.MEDIC, actor=actor)
        if not medic.is_active:
            raise BadRequestError("Medic account is not active")
        patient.assigned_medic = medic
    db.flush()
    logger.info(
        "patient medic assignment changed",
        extra={"patient_id": str(patient.id), "medic_id": str(medic_id) if medic_id else None},
    )
    return patient


def list_medic_patients(db: Session, *, actor: User) -> list[User]:
    """Active patients assigned to the calling medic."""

    require_role(actor, UserRole.MEDIC)
    tenant_id = require_tenant(actor)
    stmt = (
        select(User)
        .where(
            User.tenant_id == tenant_id,
            User.role == UserRole.PATIENT,
            User.assigned_medic_id == actor.id,
            User.is_active.is_(True),
        )
        .order_by(User.name, User.email)
    )
    return list(db.execute(stmt).scalars())


def list_medic_pending_invites(db: Session, *, actor: User) -> list[User]:
    """Patients invited by (and assigned to) the medic who have not accepted yet."""

    require_role(actor, UserRole.MEDIC)
    tenant_id = require_tenant(actor)
    stmt = (
        select(User)
        .where(
            User.tenant_id == tenant_id,
            User.role == UserRole.PATIENT,
            User.assigned_medic_id == actor.id,
            User.is_active.is_(False),
            User.invitation_token.is_not(None),
        )
        .order_by(User.created_at)
    )
    return list(db.execute(stmt).scalars())

"""Tenant-scoped authorization predicates shared by every domain service.

Cross-tenant references are reported as missing rather than forbidden so an
actor can never learn whether another tenant's data exists.
"""

from __future__ import annotations

import logging
from typing import TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from kinetoflow.core.errors import ForbiddenError, NotFoundError
from kinetoflow.models import User, UserRole

logger = logging.getLogger(__name__)

T = TypeVar("T")


def require_role(actor: User, *roles: UserRole) -> None:
    """Raise ``ForbiddenError`` unless the actor holds one of ``roles``."""

    if actor.role not in roles:
        logger.warning(
            "role check refused",
            extra={"actor_role": actor.role.value, "allowed": [r.value for r in roles]},
        )
        raise ForbiddenError("You do not have permission to perform this action")


def require_tenant(actor: User) -> UUID:
    """Return the actor's tenant id, refusing tenantless actors."""

    if actor.tenant_id is None:
        raise ForbiddenError("This action requires a company-bound account")
    return actor.tenant_id


def is_visible(actor: User, tenant_id: UUID | None) -> bool:
    if actor.role == UserRole.PLATFORM_ADMIN:
        return True
    return tenant_id is not None and tenant_id == actor.tenant_id


def ensure_visible(actor: User, tenant_id: UUID | None, noun: str) -> None:
    if not is_visible(actor, tenant_id):
        raise NotFoundError(f"{noun} not found")


def get_scoped(
    db: Session,
    model: type[T],
    entity_id: UUID,
    *,
    actor: User,
    noun: str,
    for_update: bool = False,
) -> T:
    """Load a tenant-owned entity by id or raise ``NotFoundError``."""

    stmt = select(model).where(model.id == entity_id)  # type: ignore[attr-defined]
    if for_update:
        stmt = stmt.with_for_update()
    entity = db.execute(stmt).scalars().first()
    if entity is None:
        raise NotFoundError(f"{noun} not found")
    ensure_visible(actor, entity.tenant_id, noun)  # type: ignore[attr-defined]
    return entity


def get_user_with_role(
    db: Session,
    user_id: UUID,
    role: UserRole,
    *,
    actor: User,
    for_update: bool = False,
) -> User:
    """Load a same-tenant user holding ``role``; anything else is not found."""

    noun = role.label.capitalize()
    user = get_scoped(db, User, user_id, actor=actor, noun=noun, for_update=for_update)
    if user.role != role:
        raise NotFoundError(f"{noun} not found")
    return user


def is_assigned_medic(actor: User, patient: User) -> bool:
    return actor.role == UserRole.MEDIC and patient.assigned_medic_id == actor.id


def ensure_assigned_medic(actor: User, patient: User) -> None:
    if not is_assigned_medic(actor, patient):
        logger.warning(
            "medic is not assigned to patient",
            extra={"patient_id": str(patient.id)},
        )
        raise ForbiddenError("This patient is not assigned to you")


def ensure_can_manage_patient(actor: User, patient: User) -> None:
    """Tenant admins manage any patient of their tenant; medics only their own."""

    ensure_visible(actor, patient.tenant_id, "Patient")
    if actor.role == UserRole.TENANT_ADMIN:
        return
    if actor.role == UserRole.MEDIC:
        ensure_assigned_medic(actor, patient)
        return
    raise ForbiddenError("You do not have permission to manage this patient")


def can_view_patient_data(actor: User, patient: User) -> bool:
    if actor.id == patient.id:
        return True
    if actor.role == UserRole.PLATFORM_ADMIN:
        return True
    if actor.tenant_id is None or actor.tenant_id != patient.tenant_id:
        return False
    if actor.role == UserRole.TENANT_ADMIN:
        return True
    return is_assigned_medic(actor, patient)


def ensure_not_administrative(target: User) -> None:
    if target.role.is_admin:
        raise ForbiddenError("Administrative accounts cannot be modified here")


__all__ = [
    "can_view_patient_data",
    "ensure_assigned_medic",
    "ensure_can_manage_patient",
    "ensure_not_administrative",
    "ensure_visible",
    "get_scoped",
    "get_user_with_role",
    "is_assigned_medic",
    "is_visible",
    "require_role",
    "require_tenant",
]

"""Per-tenant user counts for the company dashboard."""

from __future__ import annotations

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from kinetoflow.models import User, UserRole
from kinetoflow.schemas.dashboard import CompanyStats
from kinetoflow.services.access import require_role, require_tenant


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def company_stats(db: Session, *, actor: User) -> CompanyStats:
    require_role(actor, UserRole.TENANT_ADMIN)
    tenant_id = require_tenant(actor)

    is_medic = User.role == UserRole.MEDIC
    is_patient = User.role == UserRole.PATIENT
    active = User.is_active.is_(True)
    pending = User.is_active.is_(False)
    stmt = select(
        _count_where(is_medic & active),
        _count_where(is_medic & pending),
        _count_where(is_patient & active),
        _count_where(is_patient & pending),
        _count_where(is_patient & active & User.assigned_medic_id.is_(None)),
    ).where(User.tenant_id == tenant_id)
    row = db.execute(stmt).one()
    return CompanyStats(
        active_medics=row[0],
        pending_medics=row[1],
        active_patients=row[2],
        pending_patients=row[3],
        unassigned_patients=row[4],
    )

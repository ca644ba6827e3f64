"""Tenant (company) administration."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kinetoflow.core.errors import BadRequestError, NotFoundError
from kinetoflow.models import Company, User, UserRole
from kinetoflow.services.access import require_role, require_tenant

logger = logging.getLogger(__name__)


def _name_taken(db: Session, name: str, *, exclude_id: UUID | None = None) -> bool:
    stmt = select(Company.id).where(func.lower(Company.name) == name.strip().lower())
    if exclude_id is not None:
        stmt = stmt.where(Company.id != exclude_id)
    return db.execute(stmt).first() is not None


def create_company(db: Session, *, actor: User, name: str, address: str | None) -> Company:
    require_role(actor, UserRole.PLATFORM_ADMIN)
    if _name_taken(db, name):
        raise BadRequestError(f"Company with name '{name.strip()}' already exists")

    company = Company(name=name.strip(), address=address)
    db.add(company)
    db.flush()
    logger.info("company created", extra={"company_id": str(company.id)})
    return company


def list_companies(db: Session, *, actor: User) -> list[Company]:
    require_role(actor, UserRole.PLATFORM_ADMIN)
    return list(db.execute(select(Company).order_by(Company.name)).scalars())


def get_my_company(db: Session, *, actor: User) -> Company:
    require_role(actor, UserRole.TENANT_ADMIN)
    company = db.get(Company, require_tenant(actor))
    if company is None:
        raise NotFoundError("Company not found")
    return company


def update_my_company(db: Session, *, actor: User, address: str | None) -> Company:
    """Update the admin's own company. Only the address is editable."""

    company = get_my_company(db, actor=actor)
    if address is not None:
        company.address = address
    db.flush()
    logger.info("company updated", extra={"company_id": str(company.id)})
    return company

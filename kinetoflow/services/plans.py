"""Patient plans and their session-counting line items."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from kinetoflow.core.clock import to_storage, utcnow
from kinetoflow.core.errors import BadRequestError, ForbiddenError, NotFoundError
from kinetoflow.models import Package, PatientPlan, PlanItem, User, UserRole
from kinetoflow.schemas.plans import PlanAssignRequest
from kinetoflow.services.access import (
    can_view_patient_data,
    ensure_assigned_medic,
    ensure_can_manage_patient,
    get_scoped,
    get_user_with_role,
    require_role,
    require_tenant,
)
from kinetoflow.services.catalog import load_services_for_items

logger = logging.getLogger(__name__)


def assign_plan(
    db: Session,
    *,
    actor: User,
    patient_id: UUID,
    payload: PlanAssignRequest,
    now: datetime | None = None,
) -> PatientPlan:
    """Give a patient a new plan built from a package or from explicit items."""

    require_role(actor, UserRole.TENANT_ADMIN, UserRole.MEDIC)
    tenant_id = require_tenant(actor)

    use_package = payload.package_id is not None
    use_items = bool(payload.service_items)
    if use_package == use_items:
        raise BadRequestError("Provide either a package or a list of service items, not both")

    patient = get_user_with_role(db, patient_id, UserRole.PATIENT, actor=actor)
    ensure_can_manage_patient(actor, patient)
    if not patient.is_active:
        raise BadRequestError("Cannot assign a plan to an inactive patient")

    plan = PatientPlan(
        patient=patient,
        assigned_by=actor,
        tenant_id=tenant_id,
        is_active=True,
        is_archived=False,
        assigned_at=to_storage(now) if now else utcnow(),
        expires_at=to_storage(payload.expires_at) if payload.expires_at else None,
        notes=payload.notes,
    )

    if use_package:
        package = get_scoped(db, Package, payload.package_id, actor=actor, noun="Package")
        if not package.is_active:
            raise BadRequestError(f"Package '{package.name}' is not active")
        if not package.items:
            raise BadRequestError(f"Package '{package.name}' contains no services")
        for package_item in package.items:
            if not package_item.service.is_active:
                raise BadRequestError(
                    f"Package '{package.name}' includes inactive service "
                    f"'{package_item.service.name}'"
                )
        plan.originating_package = package
        lines = [(package_item.service, package_item.quantity) for package_item in package.items]
    else:
        services = load_services_for_items(db, actor=actor, items=payload.service_items or [])
        lines = [(services[item.service_id], item.quantity) for item in payload.service_items or []]

    for service, quantity in lines:
        plan.items.append(
            PlanItem(
                service=service,
                total_quantity=quantity,
                remaining_quantity=quantity,
                price_per_unit=service.price,
                is_item_active=True,
                is_archived=False,
            )
        )

    db.add(plan)
    db.flush()
    logger.info(
        "plan assigned",
        extra={
            "plan_id": str(plan.id),
            "patient_id": str(patient.id),
            "package_id": str(plan.originating_package_id) if use_package else None,
            "items": len(plan.items),
        },
    )
    return plan


def _patient_plans_stmt(patient_id: UUID):
    return (
        select(PatientPlan)
        .where(PatientPlan.patient_id == patient_id, PatientPlan.is_archived.is_(False))
        .order_by(PatientPlan.assigned_at.desc(), PatientPlan.created_at.desc())
    )


def get_plans_for_patient(db: Session, *, actor: User, patient_id: UUID) -> list[PatientPlan]:
    """Non-archived plans of a patient, newest first."""

    patient = get_user_with_role(db, patient_id, UserRole.PATIENT, actor=actor)
    if not can_view_patient_data(actor, patient):
        raise ForbiddenError("You are not allowed to view this patient's plans")
    return list(db.execute(_patient_plans_stmt(patient.id)).scalars())


def list_own_plans(db: Session, *, actor: User) -> list[PatientPlan]:
    require_role(actor, UserRole.PATIENT)
    return list(db.execute(_patient_plans_stmt(actor.id)).scalars())


def get_own_plan(db: Session, *, actor: User, plan_id: UUID) -> PatientPlan:
    require_role(actor, UserRole.PATIENT)
    plan = db.get(PatientPlan, plan_id)
    if plan is None or plan.patient_id != actor.id:
        raise NotFoundError("Plan not found")
    return plan


def _get_managed_plan(db: Session, actor: User, plan_id: UUID) -> PatientPlan:
    plan = get_scoped(db, PatientPlan, plan_id, actor=actor, noun="Plan", for_update=True)
    ensure_can_manage_patient(actor, plan.patient)
    return plan


def set_plan_active(
    db: Session, *, actor: User, plan_id: UUID, active: bool
) -> PatientPlan:
    """Pause or resume a plan.

    Pausing deactivates every active item. Resuming re-enables non-archived
    items whose service is still active and forces the rest off.
    """

    require_role(actor, UserRole.TENANT_ADMIN, UserRole.MEDIC)
    plan = _get_managed_plan(db, actor, plan_id)
    if plan.is_archived:
        raise BadRequestError("Archived plans cannot be activated or deactivated")

    plan.is_active = active
    for item in plan.items:
        if item.is_archived:
            continue
        if not active:
            item.is_item_active = False
        else:
            item.is_item_active = item.service.is_active
    db.flush()
    logger.info("plan status changed", extra={"plan_id": str(plan.id), "active": active})
    return plan


def archive_plan(db: Session, *, actor: User, plan_id: UUID) -> PatientPlan:
    """Archive a plan and all of its items. Archiving twice is a no-op."""

    require_role(actor, UserRole.TENANT_ADMIN, UserRole.MEDIC)
    plan = _get_managed_plan(db, actor, plan_id)
    if plan.is_archived:
        return plan

    plan.is_archived = True
    plan.is_active = False
    for item in plan.items:
        item.is_archived = True
        item.is_item_active = False
    db.flush()
    logger.info("plan archived", extra={"plan_id": str(plan.id)})
    return plan


def _get_medic_item(db: Session, actor: User, item_id: UUID) -> PlanItem:
    require_role(actor, UserRole.MEDIC)
    require_tenant(actor)
    item = db.execute(
        select(PlanItem).where(PlanItem.id == item_id).with_for_update()
    ).scalars().first()
    if item is None or item.plan.tenant_id != actor.tenant_id:
        raise NotFoundError("Plan item not found")
    ensure_assigned_medic(actor, item.plan.patient)
    return item


def set_item_active(db: Session, *, actor: User, item_id: UUID, active: bool) -> PlanItem:
    item = _get_medic_item(db, actor, item_id)
    if item.plan.is_archived or item.is_archived:
        raise BadRequestError("Archived plan items cannot change status")
    if active:
        if not item.plan.is_active:
            raise BadRequestError("Cannot activate an item of an inactive plan")
        if not item.service.is_active:
            raise BadRequestError(f"Service '{item.service.name}' is inactive")

    item.is_item_active = active
    db.flush()
    logger.info("plan item status changed", extra={"item_id": str(item.id), "active": active})
    return item


def archive_item(db: Session, *, actor: User, item_id: UUID) -> PlanItem:
    item = _get_medic_item(db, actor, item_id)
    if item.plan.is_archived or item.is_archived:
        return item

    item.is_archived = True
    item.is_item_active = False
    db.flush()
    logger.info("plan item archived", extra={"item_id": str(item.id)})
    return item


def update_item_quantities(
    db: Session,
    *,
    actor: User,
    item_id: UUID,
    total_quantity: int,
    remaining_quantity: int,
) -> PlanItem:
    """Manually correct the session counters of a live item."""

    item = _get_medic_item(db, actor, item_id)
    if total_quantity < 1:
        raise BadRequestError("Total quantity must be at least 1")
    if remaining_quantity < 0 or remaining_quantity > total_quantity:
        raise BadRequestError("Remaining quantity must be between 0 and the total quantity")
    if not item.plan.is_live or not item.is_live:
        raise BadRequestError("Only items of active, non-archived plans can be corrected")

    item.total_quantity = total_quantity
    item.remaining_quantity = remaining_quantity
    db.flush()
    logger.info(
        "plan item quantities updated",
        extra={
            "item_id": str(item.id),
            "total": total_quantity,
            "remaining": remaining_quantity,
        },
    )
    return item

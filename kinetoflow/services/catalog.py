"""Services and packages owned by a tenant."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kinetoflow.core.errors import BadRequestError
from kinetoflow.models import Package, PackageItem, Service, User, UserRole
from kinetoflow.schemas.catalog import PackageIn, ServiceIn, ServiceItemIn
from kinetoflow.services.access import get_scoped, require_role, require_tenant

logger = logging.getLogger(__name__)


def _service_name_taken(
    db: Session, tenant_id: UUID, name: str, *, exclude_id: UUID | None = None
) -> bool:
    stmt = select(Service.id).where(
        Service.tenant_id == tenant_id, func.lower(Service.name) == name.strip().lower()
    )
    if exclude_id is not None:
        stmt = stmt.where(Service.id != exclude_id)
    return db.execute(stmt).first() is not None


def _package_name_taken(
    db: Session, tenant_id: UUID, name: str, *, exclude_id: UUID | None = None
) -> bool:
    stmt = select(Package.id).where(
        Package.tenant_id == tenant_id, func.lower(Package.name) == name.strip().lower()
    )
    if exclude_id is not None:
        stmt = stmt.where(Package.id != exclude_id)
    return db.execute(stmt).first() is not None


def active_packages_using(db: Session, service_id: UUID) -> list[Package]:
    stmt = (
        select(Package)
        .join(PackageItem, PackageItem.package_id == Package.id)
        .where(PackageItem.service_id == service_id, Package.is_active.is_(True))
        .order_by(Package.name)
    )
    return list(db.execute(stmt).scalars().unique())


def _ensure_can_deactivate(db: Session, service: Service) -> None:
    packages = active_packages_using(db, service.id)
    if packages:
        names = ", ".join(package.name for package in packages)
        raise BadRequestError(
            f"Service '{service.name}' is part of active packages ({names}); "
            "deactivate those packages first"
        )


def _ensure_can_activate(package: Package) -> None:
    inactive = [item.service.name for item in package.items if not item.service.is_active]
    if inactive:
        raise BadRequestError(
            "Package cannot be active while it includes inactive services: "
            + ", ".join(sorted(inactive))
        )


def load_services_for_items(
    db: Session, *, actor: User, items: Sequence[ServiceItemIn]
) -> dict[UUID, Service]:
    """Resolve the services referenced by an item list.

    Rejects empty lists, repeated service ids, and services that are outside
    the actor's tenant or inactive.
    """

    if not items:
        raise BadRequestError("At least one service item is required")

    tenant_id = require_tenant(actor)
    service_ids = [item.service_id for item in items]
    if len(set(service_ids)) != len(service_ids):
        raise BadRequestError("Each service may only appear once")

    stmt = select(Service).where(Service.id.in_(service_ids))
    services = {service.id: service for service in db.execute(stmt).scalars()}
    for service_id in service_ids:
        service = services.get(service_id)
        if service is None or service.tenant_id != tenant_id:
            raise BadRequestError(f"Service {service_id} does not belong to your company")
        if not service.is_active:
            raise BadRequestError(f"Service '{service.name}' is inactive")
    return services


# Services


def list_services(db: Session, *, actor: User, active_only: bool = False) -> list[Service]:
    tenant_id = require_tenant(actor)
    stmt = select(Service).where(Service.tenant_id == tenant_id).order_by(Service.name)
    if active_only:
        stmt = stmt.where(Service.is_active.is_(True))
    return list(db.execute(stmt).scalars())


def get_service(db: Session, *, actor: User, service_id: UUID) -> Service:
    require_role(actor, UserRole.TENANT_ADMIN)
    return get_scoped(db, Service, service_id, actor=actor, noun="Service")


def create_service(db: Session, *, actor: User, payload: ServiceIn) -> Service:
    require_role(actor, UserRole.TENANT_ADMIN)
    tenant_id = require_tenant(actor)
    if _service_name_taken(db, tenant_id, payload.name):
        raise BadRequestError(f"Service with name '{payload.name.strip()}' already exists")

    service = Service(
        tenant_id=tenant_id,
        name=payload.name.strip(),
        description=payload.description,
        duration_minutes=payload.duration_minutes,
        price=payload.price,
        category=payload.category,
        is_active=payload.active,
    )
    db.add(service)
    db.flush()
    logger.info("service created", extra={"service_id": str(service.id)})
    return service


def update_service(
    db: Session, *, actor: User, service_id: UUID, payload: ServiceIn
) -> Service:
    require_role(actor, UserRole.TENANT_ADMIN)
    service = get_scoped(db, Service, service_id, actor=actor, noun="Service", for_update=True)
    if _service_name_taken(db, service.tenant_id, payload.name, exclude_id=service.id):
        raise BadRequestError(f"Service with name '{payload.name.strip()}' already exists")
    if service.is_active and not payload.active:
        _ensure_can_deactivate(db, service)

    service.name = payload.name.strip()
    service.description = payload.description
    service.duration_minutes = payload.duration_minutes
    service.price = payload.price
    service.category = payload.category
    service.is_active = payload.active
    db.flush()
    logger.info("service updated", extra={"service_id": str(service.id)})
    return service


def set_service_active(
    db: Session, *, actor: User, service_id: UUID, active: bool
) -> Service:
    require_role(actor, UserRole.TENANT_ADMIN)
    service = get_scoped(db, Service, service_id, actor=actor, noun="Service", for_update=True)
    if service.is_active == active:
        return service
    if not active:
        _ensure_can_deactivate(db, service)

    service.is_active = active
    db.flush()
    logger.info(
        "service status changed", extra={"service_id": str(service.id), "active": active}
    )
    return service


# Packages


def list_packages(db: Session, *, actor: User, active_only: bool = False) -> list[Package]:
    tenant_id = require_tenant(actor)
    stmt = select(Package).where(Package.tenant_id == tenant_id).order_by(Package.name)
    if active_only:
        stmt = stmt.where(Package.is_active.is_(True))
    return list(db.execute(stmt).scalars())


def get_package(db: Session, *, actor: User, package_id: UUID) -> Package:
    require_role(actor, UserRole.TENANT_ADMIN)
    return get_scoped(db, Package, package_id, actor=actor, noun="Package")


def create_package(db: Session, *, actor: User, payload: PackageIn) -> Package:
    require_role(actor, UserRole.TENANT_ADMIN)
    tenant_id = require_tenant(actor)
    services = load_services_for_items(db, actor=actor, items=payload.items)
    if _package_name_taken(db, tenant_id, payload.name):
        raise BadRequestError(f"Package with name '{payload.name.strip()}' already exists")

    package = Package(
        tenant_id=tenant_id,
        name=payload.name.strip(),
        description=payload.description,
        total_price=payload.total_price,
        is_active=payload.active,
    )
    for item in payload.items:
        package.items.append(
            PackageItem(service=services[item.service_id], quantity=item.quantity)
        )
    db.add(package)
    db.flush()
    logger.info(
        "package created",
        extra={"package_id": str(package.id), "items": len(package.items)},
    )
    return package


def reconcile_package_items(
    package: Package, items: Sequence[ServiceItemIn], services: dict[UUID, Service]
) -> tuple[int, int, int]:
    """Make the package's items match ``items`` in place.

    Existing lines are updated, new services appended and missing ones
    removed. Returns the (created, updated, removed) counts.
    """

    wanted = {item.service_id: item.quantity for item in items}
    created = updated = removed = 0

    for existing in list(package.items):
        if existing.service_id not in wanted:
            package.items.remove(existing)
            removed += 1
            continue
        quantity = wanted.pop(existing.service_id)
        if existing.quantity != quantity:
            existing.quantity = quantity
            updated += 1

    for service_id, quantity in wanted.items():
        package.items.append(PackageItem(service=services[service_id], quantity=quantity))
        created += 1
    return created, updated, removed


def update_package(
    db: Session, *, actor: User, package_id: UUID, payload: PackageIn
) -> Package:
    require_role(actor, UserRole.TENANT_ADMIN)
    package = get_scoped(db, Package, package_id, actor=actor, noun="Package", for_update=True)
    services = load_services_for_items(db, actor=actor, items=payload.items)
    if _package_name_taken(db, package.tenant_id, payload.name, exclude_id=package.id):
        raise BadRequestError(f"Package with name '{payload.name.strip()}' already exists")

    package.name = payload.name.strip()
    package.description = payload.description
    package.total_price = payload.total_price
    created, updated, removed = reconcile_package_items(package, payload.items, services)
    if payload.active:
        _ensure_can_activate(package)
    package.is_active = payload.active
    db.flush()
    logger.info(
        "package updated",
        extra={
            "package_id": str(package.id),
            "items_created": created,
            "items_updated": updated,
            "items_removed": removed,
        },
    )
    return package


def set_package_active(
    db: Session, *, actor: User, package_id: UUID, active: bool
) -> Package:
    require_role(actor, UserRole.TENANT_ADMIN)
    package = get_scoped(db, Package, package_id, actor=actor, noun="Package", for_update=True)
    if package.is_active == active:
        return package
    if active:
        _ensure_can_activate(package)

    package.is_active = active
    db.flush()
    logger.info(
        "package status changed", extra={"package_id": str(package.id), "active": active}
    )
    return package

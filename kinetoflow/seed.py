from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from kinetoflow.core.security import hash_password
from kinetoflow.db.session import SessionLocal
from kinetoflow.logging_utils import configure_logging, set_tenant_context
from kinetoflow.models import Company, Package, PackageItem, Service, User, UserRole

logger = logging.getLogger(__name__)

COMPANY_NAME = "KinetoFlow Demo Clinic"
DEMO_PASSWORD = "kinetoflow-demo"  # pragma: allowlist secret

SERVICE_CATALOG: list[tuple[str, int, Decimal, str]] = [
    ("Initial Assessment", 60, Decimal("45.00"), "Assessment"),
    ("Manual Therapy", 45, Decimal("35.00"), "Therapy"),
    ("Kinesiotherapy Session", 60, Decimal("30.00"), "Therapy"),
]

PACKAGE_NAME = "Back Pain Recovery"
PACKAGE_ITEMS: list[tuple[str, int]] = [
    ("Initial Assessment", 1),
    ("Manual Therapy", 4),
    ("Kinesiotherapy Session", 6),
]

ACCOUNTS: list[tuple[str, str, UserRole]] = [
    ("Platform Admin", "platform.admin@example.com", UserRole.PLATFORM_ADMIN),
    ("Clinic Admin", "clinic.admin@example.com", UserRole.TENANT_ADMIN),
    ("Dr. Elena Popescu", "medic@example.com", UserRole.MEDIC),
    ("Andrei Ionescu", "patient@example.com", UserRole.PATIENT),
]


def ensure_company(session: Session) -> Company:
    company = session.execute(
        select(Company).where(Company.name == COMPANY_NAME)
    ).scalar_one_or_none()
    if company:
        logger.info("company already present", extra={"company_id": str(company.id)})
        return company

    company = Company(name=COMPANY_NAME, address="1 Demo Street")
    session.add(company)
    session.flush()
    logger.info("created company", extra={"company_id": str(company.id)})
    return company


def ensure_accounts(session: Session, company: Company) -> dict[UserRole, User]:
    accounts: dict[UserRole, User] = {}
    created = 0
    for name, email, role in ACCOUNTS:
        user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if not user:
            user = User(
                name=name,
                email=email,
                password_hash=hash_password(DEMO_PASSWORD),
                role=role,
                is_active=True,
                tenant_id=None if role == UserRole.PLATFORM_ADMIN else company.id,
            )
            session.add(user)
            session.flush()
            created += 1
        accounts[role] = user

    patient = accounts[UserRole.PATIENT]
    if patient.assigned_medic_id is None:
        patient.assigned_medic_id = accounts[UserRole.MEDIC].id

    logger.info("ensured accounts", extra={"created_count": created, "total": len(accounts)})
    return accounts


def ensure_services(session: Session, company: Company) -> dict[str, Service]:
    services: dict[str, Service] = {}
    created = 0
    for name, duration, price, category in SERVICE_CATALOG:
        service = session.execute(
            select(Service).where(Service.tenant_id == company.id, Service.name == name)
        ).scalar_one_or_none()
        if not service:
            service = Service(
                tenant_id=company.id,
                name=name,
                duration_minutes=duration,
                price=price,
                category=category,
                is_active=True,
            )
            session.add(service)
            session.flush()
            created += 1
        services[name] = service

    logger.info("ensured services", extra={"created_count": created, "total": len(services)})
    return services


def ensure_package(session: Session, company: Company, services: dict[str, Service]) -> Package:
    package = session.execute(
        select(Package).where(Package.tenant_id == company.id, Package.name == PACKAGE_NAME)
    ).scalar_one_or_none()
    if package:
        return package

    package = Package(
        tenant_id=company.id,
        name=PACKAGE_NAME,
        description="Assessment followed by a course of therapy sessions.",
        total_price=Decimal("299.00"),
        is_active=True,
    )
    for service_name, quantity in PACKAGE_ITEMS:
        package.items.append(PackageItem(service=services[service_name], quantity=quantity))
    session.add(package)
    session.flush()
    logger.info("created package", extra={"package_id": str(package.id)})
    return package


def seed() -> None:
    configure_logging()
    logger.info("starting seed process")

    session = SessionLocal()
    try:
        company = ensure_company(session)
        set_tenant_context(company.id)
        ensure_accounts(session, company)
        services = ensure_services(session, company)
        ensure_package(session, company, services)
        session.commit()
        logger.info("seed complete", extra={"company_id": str(company.id)})
    except Exception:
        session.rollback()
        logger.exception("seed failed")
        raise
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - script entrypoint
    seed()

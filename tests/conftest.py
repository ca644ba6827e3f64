import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["TASK_ALWAYS_EAGER"] = "true"
os.environ["MAIL_MOCK_MODE"] = "true"
os.environ["JWT_SECRET"] = "test-secret"

from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from kinetoflow.core.clock import utcnow
from kinetoflow.core.security import create_access_token, hash_password
from kinetoflow.db.base import Base
from kinetoflow.db.session import SessionLocal, engine
from kinetoflow.main import app
from kinetoflow.models import (
    Company,
    Package,
    PackageItem,
    PatientPlan,
    PlanItem,
    Service,
    User,
    UserRole,
)

PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(
        email=user.email, user_id=user.id, role=user.role.value, tenant_id=user.tenant_id
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_company(db):
    counter = {"n": 0}

    def _make(name: str | None = None) -> Company:
        counter["n"] += 1
        company = Company(name=name or f"Clinic {counter['n']}", address="Main street")
        db.add(company)
        db.commit()
        return company

    return _make


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(
        role: UserRole,
        company: Company | None = None,
        *,
        name: str | None = None,
        email: str | None = None,
        active: bool = True,
        assigned_medic: User | None = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name or f"{role.value.title()} {counter['n']}",
            email=email or f"{role.value.lower()}{counter['n']}@example.com",
            password_hash=hash_password(PASSWORD),
            role=role,
            is_active=active,
            tenant_id=company.id if company else None,
            assigned_medic_id=assigned_medic.id if assigned_medic else None,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_service(db):
    def _make(
        company: Company,
        name: str = "Manual Therapy",
        *,
        duration: int = 60,
        price: str | None = "40.00",
        active: bool = True,
    ) -> Service:
        service = Service(
            tenant_id=company.id,
            name=name,
            duration_minutes=duration,
            price=Decimal(price) if price is not None else None,
            is_active=active,
        )
        db.add(service)
        db.commit()
        return service

    return _make


@pytest.fixture
def make_package(db):
    def _make(
        company: Company,
        items: list[tuple[Service, int]],
        name: str = "Recovery Pack",
        *,
        active: bool = True,
    ) -> Package:
        package = Package(tenant_id=company.id, name=name, is_active=active)
        for service, quantity in items:
            package.items.append(PackageItem(service_id=service.id, quantity=quantity))
        db.add(package)
        db.commit()
        return package

    return _make


@pytest.fixture
def make_plan(db):
    def _make(
        patient: User,
        items: list[tuple[Service, int]],
        *,
        assigned_by: User | None = None,
        remaining: int | None = None,
    ) -> PatientPlan:
        plan = PatientPlan(
            patient_id=patient.id,
            assigned_by_id=assigned_by.id if assigned_by else None,
            tenant_id=patient.tenant_id,
            assigned_at=utcnow(),
        )
        for service, quantity in items:
            plan.items.append(
                PlanItem(
                    service_id=service.id,
                    total_quantity=quantity,
                    remaining_quantity=quantity if remaining is None else remaining,
                    price_per_unit=service.price,
                )
            )
        db.add(plan)
        db.commit()
        return plan

    return _make


@pytest.fixture
def clinic(make_company, make_user, make_service):
    """A tenant with an admin, a medic, an assigned patient and one service."""

    company = make_company("Kineto Clinic")
    admin = make_user(UserRole.TENANT_ADMIN, company, name="Clinic Admin")
    medic = make_user(UserRole.MEDIC, company, name="Dr. Medic")
    patient = make_user(UserRole.PATIENT, company, name="Pat Patient", assigned_medic=medic)
    service = make_service(company, "Manual Therapy", duration=60)
    return SimpleNamespace(
        company=company, admin=admin, medic=medic, patient=patient, service=service
    )


def future(days: int = 1, hour: int = 10, minute: int = 0) -> datetime:
    """A naive UTC datetime ``days`` from today at ``hour:minute``."""

    base = utcnow().replace(hour=hour, minute=minute, second=0, microsecond=0)
    return base + timedelta(days=days)

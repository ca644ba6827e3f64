"""Import SQLAlchemy models for Alembic's autogenerate feature."""

from kinetoflow.models.base import Base
from kinetoflow.models import (  # noqa: F401
    Appointment,
    Company,
    MedicWorkingHours,
    Package,
    PackageItem,
    PatientPlan,
    PlanItem,
    Service,
    TimeBlock,
    User,
)

__all__ = [
    "Base",
    "Appointment",
    "Company",
    "MedicWorkingHours",
    "Package",
    "PackageItem",
    "PatientPlan",
    "PlanItem",
    "Service",
    "TimeBlock",
    "User",
]

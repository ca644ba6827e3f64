"""SQLAlchemy models for the KinetoFlow API."""

from kinetoflow.models.appointment import Appointment, AppointmentStatus
from kinetoflow.models.company import Company
from kinetoflow.models.package import Package, PackageItem
from kinetoflow.models.plan import PatientPlan, PlanItem
from kinetoflow.models.service import Service
from kinetoflow.models.time_block import TimeBlock
from kinetoflow.models.user import User, UserRole
from kinetoflow.models.working_hours import DayOfWeek, MedicWorkingHours

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "Company",
    "DayOfWeek",
    "MedicWorkingHours",
    "Package",
    "PackageItem",
    "PatientPlan",
    "PlanItem",
    "Service",
    "TimeBlock",
    "User",
    "UserRole",
]

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kinetoflow.core.clock import utcnow
from kinetoflow.models.base import Base, TimestampMixin
from kinetoflow.models.package import Package
from kinetoflow.models.service import Service
from kinetoflow.models.user import User


class PatientPlan(Base, TimestampMixin):
    """Per-patient instantiation of services with session counters."""

    __tablename__ = "patient_plans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    assigned_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), index=True
    )
    originating_package_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("packages.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    patient: Mapped[User] = relationship(User, foreign_keys="PatientPlan.patient_id")
    assigned_by: Mapped[User | None] = relationship(User, foreign_keys="PatientPlan.assigned_by_id")
    originating_package: Mapped[Package | None] = relationship(Package)
    items: Mapped[list[PlanItem]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PlanItem.created_at",
    )

    @property
    def is_live(self) -> bool:
        return self.is_active and not self.is_archived


class PlanItem(Base, TimestampMixin):
    """One service line of a patient plan with total/remaining sessions."""

    __tablename__ = "plan_items"
    __table_args__ = (
        CheckConstraint("total_quantity >= 1", name="total_positive"),
        CheckConstraint("remaining_quantity >= 0", name="remaining_non_negative"),
        CheckConstraint("remaining_quantity <= total_quantity", name="remaining_within_total"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    plan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("patient_plans.id", ondelete="CASCADE"), index=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="RESTRICT"), index=True
    )
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_unit: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    is_item_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    plan: Mapped[PatientPlan] = relationship(back_populates="items")
    service: Mapped[Service] = relationship(Service)

    @property
    def is_live(self) -> bool:
        return self.is_item_active and not self.is_archived

    @property
    def can_decrement(self) -> bool:
        """Whether a session may be drawn from this item right now."""

        return self.plan.is_live and self.is_live and self.remaining_quantity > 0

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from kinetoflow.models import PatientPlan, PlanItem
from kinetoflow.schemas.catalog import ServiceItemIn
from kinetoflow.schemas.common import ORMModel


class PlanAssignRequest(BaseModel):
    """Either ``package_id`` or a non-empty ``service_items`` list, never both."""

    package_id: UUID | None = None
    service_items: list[ServiceItemIn] | None = None
    expires_at: datetime | None = None
    notes: str | None = None


class PlanItemQuantitiesUpdate(BaseModel):
    total_quantity: int = Field(ge=1)
    remaining_quantity: int = Field(ge=0)


class PlanItemOut(ORMModel):
    id: UUID
    service_id: UUID
    service_name: str
    total_quantity: int
    remaining_quantity: int
    price_per_unit: Decimal | None = None
    is_item_active: bool
    is_archived: bool

    @classmethod
    def from_entity(cls, item: PlanItem) -> "PlanItemOut":
        return cls(
            id=item.id,
            service_id=item.service_id,
            service_name=item.service.name,
            total_quantity=item.total_quantity,
            remaining_quantity=item.remaining_quantity,
            price_per_unit=item.price_per_unit,
            is_item_active=item.is_item_active,
            is_archived=item.is_archived,
        )


class PlanOut(BaseModel):
    id: UUID
    tenant_id: UUID
    patient_id: UUID
    patient_name: str
    assigned_by_id: UUID | None = None
    assigned_by_name: str | None = None
    originating_package_id: UUID | None = None
    originating_package_name: str | None = None
    is_active: bool
    is_archived: bool
    assigned_at: datetime
    expires_at: datetime | None = None
    notes: str | None = None
    items: list[PlanItemOut] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, plan: PatientPlan) -> "PlanOut":
        return cls(
            id=plan.id,
            tenant_id=plan.tenant_id,
            patient_id=plan.patient_id,
            patient_name=plan.patient.name,
            assigned_by_id=plan.assigned_by_id,
            assigned_by_name=plan.assigned_by.name if plan.assigned_by else None,
            originating_package_id=plan.originating_package_id,
            originating_package_name=(
                plan.originating_package.name if plan.originating_package else None
            ),
            is_active=plan.is_active,
            is_archived=plan.is_archived,
            assigned_at=plan.assigned_at,
            expires_at=plan.expires_at,
            notes=plan.notes,
            items=[PlanItemOut.from_entity(item) for item in plan.items],
        )

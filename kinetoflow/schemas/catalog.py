from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from kinetoflow.models import Package
from kinetoflow.schemas.common import ORMModel


class ServiceIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    duration_minutes: int = Field(ge=1)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    category: str | None = Field(default=None, max_length=100)
    active: bool = True


class ServiceOut(ORMModel):
    id: UUID
    tenant_id: UUID
    name: str
    description: str | None = None
    duration_minutes: int
    price: Decimal | None = None
    category: str | None = None
    is_active: bool


class ServiceItemIn(BaseModel):
    service_id: UUID
    quantity: int = Field(ge=1)


class PackageIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    total_price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    active: bool = True
    items: list[ServiceItemIn] = Field(default_factory=list)


class PackageItemOut(BaseModel):
    id: UUID
    service_id: UUID
    service_name: str
    quantity: int


class PackageOut(ORMModel):
    id: UUID
    tenant_id: UUID
    name: str
    description: str | None = None
    total_price: Decimal | None = None
    is_active: bool
    items: list[PackageItemOut] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, package: Package) -> "PackageOut":
        return cls(
            id=package.id,
            tenant_id=package.tenant_id,
            name=package.name,
            description=package.description,
            total_price=package.total_price,
            is_active=package.is_active,
            items=[
                PackageItemOut(
                    id=item.id,
                    service_id=item.service_id,
                    service_name=item.service.name,
                    quantity=item.quantity,
                )
                for item in package.items
            ],
        )

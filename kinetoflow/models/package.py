from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kinetoflow.models.base import Base, TimestampMixin
from kinetoflow.models.service import Service


class Package(Base, TimestampMixin):
    """Template bundling services with quantities, sold as a unit."""

    __tablename__ = "packages"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_packages_tenant_id_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    items: Mapped[list[PackageItem]] = relationship(
        back_populates="package",
        cascade="all, delete-orphan",
        order_by="PackageItem.created_at",
    )


class PackageItem(Base, TimestampMixin):
    """One service line inside a package."""

    __tablename__ = "package_items"
    __table_args__ = (
        UniqueConstraint("package_id", "service_id", name="uq_package_items_package_id_service_id"),
        CheckConstraint("quantity >= 1", name="quantity_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    package_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("packages.id", ondelete="CASCADE"), index=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="RESTRICT"), index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    package: Mapped[Package] = relationship(back_populates="items")
    service: Mapped[Service] = relationship(Service)

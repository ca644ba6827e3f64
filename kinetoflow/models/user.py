from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kinetoflow.models.base import Base, TimestampMixin
from kinetoflow.models.company import Company


class UserRole(str, enum.Enum):
    """Roles an actor can hold on the platform."""

    PLATFORM_ADMIN = "PLATFORM_ADMIN"
    TENANT_ADMIN = "TENANT_ADMIN"
    MEDIC = "MEDIC"
    PATIENT = "PATIENT"

    @property
    def is_admin(self) -> bool:
        return self in (UserRole.PLATFORM_ADMIN, UserRole.TENANT_ADMIN)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class User(Base, TimestampMixin):
    """Platform account; tenant-bound unless it is a platform admin."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole, name="user_role"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True
    )
    assigned_medic_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    invited_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    invitation_token: Mapped[str | None] = mapped_column(
        String(128), unique=True, nullable=True
    )
    invitation_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    company: Mapped[Company | None] = relationship(Company)
    assigned_medic: Mapped[User | None] = relationship(
        "User", remote_side="User.id", foreign_keys="User.assigned_medic_id"
    )
    invited_by: Mapped[User | None] = relationship(
        "User", remote_side="User.id", foreign_keys="User.invited_by_id"
    )

    @property
    def has_pending_invitation(self) -> bool:
        return not self.is_active and self.invitation_token is not None

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"<User {self.email} {self.role.value}>"

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from kinetoflow.models import User, UserRole
from kinetoflow.schemas.common import ORMModel


class UserOut(ORMModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    is_active: bool
    tenant_id: UUID | None = None
    assigned_medic_id: UUID | None = None
    assigned_medic_name: str | None = None
    invitation_expires_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_entity(cls, user: User) -> "UserOut":
        out = cls.model_validate(user)
        if user.assigned_medic is not None:
            out.assigned_medic_name = user.assigned_medic.name
        return out


class ProfileUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class AssignMedicRequest(BaseModel):
    medic_id: UUID | None = None

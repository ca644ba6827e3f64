from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from kinetoflow.models import UserRole


class InvitationSendRequest(BaseModel):
    email: EmailStr
    role: UserRole
    tenant_id: UUID | None = None


class InvitationResendRequest(BaseModel):
    email: EmailStr


class InvitationDetails(BaseModel):
    email: str
    role: UserRole
    tenant_name: str | None = None
    inviter_name: str | None = None


class InvitationAcceptRequest(BaseModel):
    token: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8, max_length=128)

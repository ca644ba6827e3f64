from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from kinetoflow.models import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    token: str
    token_type: str = "Bearer"
    user_id: UUID
    name: str
    email: str
    role: UserRole
    tenant_id: UUID | None = None

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from kinetoflow.schemas.common import ORMModel


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    address: str | None = None


class CompanyUpdate(BaseModel):
    address: str | None = None


class CompanyOut(ORMModel):
    id: UUID
    name: str
    address: str | None = None
    created_at: datetime

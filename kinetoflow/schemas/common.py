from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ORMModel(BaseModel):
    """Response model populated from SQLAlchemy entities."""

    model_config = ConfigDict(from_attributes=True)


class StatusUpdate(BaseModel):
    active: bool


class MessageResponse(BaseModel):
    message: str

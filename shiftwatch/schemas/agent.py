"""Pydantic schemas for agent records."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from shiftwatch.constants.activity import Shift


class AgentCreate(BaseModel):
    """Request schema for creating an agent."""

    name: str = Field(..., min_length=1, max_length=256)
    email: str = Field(..., min_length=3, max_length=320)
    default_shift: Shift | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class AgentRead(BaseModel):
    """Response schema for an agent."""

    id: UUID
    name: str
    email: str
    external_user_id: str | None
    external_username: str | None
    is_active: bool
    default_shift: Shift | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AgentUpdate(BaseModel):
    """Request schema for updating an agent. Only fields sent are changed."""

    name: str | None = Field(None, min_length=1, max_length=256)
    email: str | None = Field(None, min_length=3, max_length=320)
    default_shift: Shift | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return value.strip().lower() if value is not None else None

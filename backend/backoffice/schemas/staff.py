"""Schemas for agency staff (agents, managers and admins)."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backoffice.models.user import UserRole, UserStatus


class StaffCreate(BaseModel):
    account_id: uuid.UUID
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    phone_number: str | None = Field(default=None, max_length=32)
    role: UserRole = UserRole.AGENT
    status: UserStatus = UserStatus.ACTIVE


class StaffRead(BaseModel):
    """Signed-in staff member as shown in the back-office header."""

    id: uuid.UUID
    account_id: uuid.UUID
    email: EmailStr
    first_name: str
    last_name: str
    phone_number: str | None = None
    role: UserRole
    status: UserStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

"""Customer schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CustomerBase(BaseModel):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: EmailStr | None = None
    phone: str | None = None
    passport_number: str | None = None
    passport_expiry: date | None = None
    nationality: str | None = None
    date_of_birth: date | None = None
    notes: str | None = None


class CustomerCreate(CustomerBase):
    agent_id: uuid.UUID | None = None


class CustomerUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=120)
    last_name: str | None = Field(default=None, min_length=1, max_length=120)
    email: EmailStr | None = None
    phone: str | None = None
    passport_number: str | None = None
    passport_expiry: date | None = None
    nationality: str | None = None
    date_of_birth: date | None = None
    notes: str | None = None
    agent_id: uuid.UUID | None = None


class CustomerRead(CustomerBase):
    id: uuid.UUID
    account_id: uuid.UUID
    agent_id: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerSummary(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str | None = None

    model_config = ConfigDict(from_attributes=True)

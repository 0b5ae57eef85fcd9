"""Pydantic schemas for email templates and outgoing email."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backoffice.models.comms import EmailState, TemplateCategory


class EmailTemplateBase(BaseModel):
    template_key: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9][a-z0-9_-]*$")
    name: str = Field(min_length=1, max_length=255)
    subject: str = Field(min_length=1)
    body_html: str = Field(min_length=1)
    body_text: str | None = None
    category: TemplateCategory = TemplateCategory.CUSTOM
    is_active: bool = True


class EmailTemplateCreate(EmailTemplateBase):
    variables: list[str] | None = None


class EmailTemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    subject: str | None = Field(default=None, min_length=1)
    body_html: str | None = Field(default=None, min_length=1)
    body_text: str | None = None
    category: TemplateCategory | None = None
    is_active: bool | None = None
    variables: list[str] | None = None
    change_description: str | None = None


class EmailTemplateRead(EmailTemplateBase):
    id: uuid.UUID
    account_id: uuid.UUID
    variables: list[str] = Field(default_factory=list)
    is_default: bool
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EmailTemplateHistoryRead(BaseModel):
    id: uuid.UUID
    template_id: uuid.UUID
    version: int
    subject: str
    body_html: str
    body_text: str | None = None
    variables: list[str] = Field(default_factory=list)
    change_description: str | None = None
    changed_by: uuid.UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TemplatePreviewRequest(BaseModel):
    variables: dict[str, Any] = Field(default_factory=dict)


class TemplatePreviewRead(BaseModel):
    subject: str
    body_html: str
    body_text: str | None = None
    missing_variables: list[str] = Field(default_factory=list)


class EmailSendRequest(BaseModel):
    """Send either a raw message or a stored template."""

    to: list[EmailStr] = Field(min_length=1)
    subject: str | None = None
    body: str | None = None
    template_key: str | None = None
    variables: dict[str, Any] = Field(default_factory=dict)
    customer_id: uuid.UUID | None = None
    quote_id: uuid.UUID | None = None
    booking_id: uuid.UUID | None = None


class EmailSendResultRead(BaseModel):
    success: bool
    message_id: str | None = None
    error: str | None = None
    outbox_id: uuid.UUID | None = None


class EmailOutboxRead(BaseModel):
    id: uuid.UUID
    recipients: list[str]
    subject: str
    state: EmailState
    provider_message_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

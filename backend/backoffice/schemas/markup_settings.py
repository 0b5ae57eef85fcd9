"""Markup policy schemas."""

from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from backoffice.models.quote import MarkupType


class MarkupSettingsRead(BaseModel):
    account_id: uuid.UUID
    flight_markup: Decimal
    flight_markup_type: MarkupType
    hotel_markup: Decimal
    hotel_markup_type: MarkupType
    activity_markup: Decimal
    activity_markup_type: MarkupType

    model_config = ConfigDict(from_attributes=True)


class MarkupSettingsUpdate(BaseModel):
    flight_markup: Decimal | None = Field(default=None, ge=Decimal("0"))
    flight_markup_type: MarkupType | None = None
    hotel_markup: Decimal | None = Field(default=None, ge=Decimal("0"))
    hotel_markup_type: MarkupType | None = None
    activity_markup: Decimal | None = Field(default=None, ge=Decimal("0"))
    activity_markup_type: MarkupType | None = None

"""Pricing schema definitions."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from backoffice.models.quote import (
    MAX_TRIP_DURATION_DAYS,
    ItemType,
    MarkupStrategy,
    MarkupType,
)


class PricingLineRead(BaseModel):
    """Priced view of one quote item."""

    item_id: uuid.UUID | None = None
    item_type: ItemType | None = None
    quantity: int
    unit_price: Decimal
    total: Decimal
    per_night: bool = False
    effective_markup: Decimal
    effective_markup_type: MarkupType


class DayTotalRead(BaseModel):
    day_index: int
    total: Decimal


class DayBreakdownRead(BaseModel):
    trip_duration_days: int
    days: list[DayTotalRead]
    unassigned_item_ids: list[uuid.UUID | None] = Field(default_factory=list)
    unassigned_total: Decimal


class QuotePricingRead(BaseModel):
    """Aggregated pricing response."""

    strategy: MarkupStrategy
    lines: list[PricingLineRead]
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    average_markup: Decimal
    formatted_total: str | None = None
    day_breakdown: DayBreakdownRead | None = None


class PricingPreviewItem(BaseModel):
    id: uuid.UUID | None = None
    item_type: ItemType
    cost: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    markup: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    markup_type: MarkupType = MarkupType.PERCENTAGE
    quantity: int = Field(default=1, ge=1)
    details: dict[str, Any] = Field(default_factory=dict)


class PricingPreviewRequest(BaseModel):
    """Unsaved quote payload priced with the same engine as stored quotes."""

    markup: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    discount: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), lt=Decimal("100"))
    markup_strategy: MarkupStrategy | None = None
    quote_items: list[PricingPreviewItem] = Field(default_factory=list)
    trip_duration_days: int | None = Field(
        default=None, ge=1, le=MAX_TRIP_DURATION_DAYS
    )
    round_to_cents: bool = False
    include_discount: bool = True

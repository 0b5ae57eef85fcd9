"""Client-facing quote view. Prices only, never cost or markup."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from backoffice.models.quote import ItemType, QuoteStatus


class PortalQuoteItemRead(BaseModel):
    item_type: ItemType
    item_name: str
    quantity: int
    per_night: bool
    unit_price: Decimal
    total: Decimal
    details: dict[str, Any] = Field(default_factory=dict)


class PortalQuoteRead(BaseModel):
    quote_reference: str
    status: QuoteStatus
    customer_name: str
    trip_start_date: date | None = None
    trip_end_date: date | None = None
    expiry_date: datetime | None = None
    items: list[PortalQuoteItemRead]
    subtotal: Decimal
    discount: Decimal
    discount_amount: Decimal
    total: Decimal
    currency: str
    formatted_total: str

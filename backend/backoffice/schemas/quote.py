"""Pydantic schemas for quotes and quote items."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backoffice.models.quote import ItemType, MarkupStrategy, MarkupType, QuoteStatus
from backoffice.schemas.customer import CustomerSummary


class ItemDetails(BaseModel):
    """Details for flights, tours and transfers. Unknown keys are kept."""

    day_index: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    linked_flight_id: str | None = None

    model_config = ConfigDict(extra="allow")


class HotelDetails(BaseModel):
    """Details for hotel stays."""

    day_index: int | None = None
    nights: int | None = Field(default=None, ge=1)
    check_in_date: date | None = None
    check_out_date: date | None = None
    room_type: str | None = None

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="after")
    def _check_dates(self) -> "HotelDetails":
        if (
            self.check_in_date is not None
            and self.check_out_date is not None
            and self.check_out_date <= self.check_in_date
        ):
            raise ValueError("check_out_date must be after check_in_date")
        return self


def parse_item_details(
    item_type: ItemType, raw: dict[str, Any] | None
) -> HotelDetails | ItemDetails:
    """Validate ``raw`` against the details shape for ``item_type``."""
    model = HotelDetails if item_type is ItemType.HOTEL else ItemDetails
    return model.model_validate(raw or {})


def _normalise_details(item_type: ItemType, raw: dict[str, Any] | None) -> dict[str, Any]:
    return parse_item_details(item_type, raw).model_dump(mode="json", exclude_none=True)


class QuoteItemBase(BaseModel):
    item_type: ItemType
    item_name: str = Field(min_length=1, max_length=255)
    cost: Decimal = Field(ge=Decimal("0"))
    markup: Decimal | None = Field(default=None, ge=Decimal("0"))
    markup_type: MarkupType = MarkupType.PERCENTAGE
    quantity: int | None = Field(default=None, ge=1)
    details: dict[str, Any] = Field(default_factory=dict)


class QuoteItemCreate(QuoteItemBase):
    """Payload for adding an item to a quote.

    ``markup`` left unset takes the agency default when the quote stores the
    individual strategy. ``quantity`` left unset is derived from the stay for
    hotels and is 1 otherwise.
    """

    @model_validator(mode="after")
    def _validate_details(self) -> "QuoteItemCreate":
        self.details = _normalise_details(self.item_type, self.details)
        return self


class QuoteItemUpdate(BaseModel):
    item_name: str | None = Field(default=None, min_length=1, max_length=255)
    cost: Decimal | None = Field(default=None, ge=Decimal("0"))
    markup: Decimal | None = Field(default=None, ge=Decimal("0"))
    markup_type: MarkupType | None = None
    quantity: int | None = Field(default=None, ge=1)
    details: dict[str, Any] | None = None


class QuoteItemRead(BaseModel):
    id: uuid.UUID
    quote_id: uuid.UUID
    position: int
    item_type: ItemType
    item_name: str
    cost: Decimal
    markup: Decimal
    markup_type: MarkupType
    quantity: int
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class QuoteBase(BaseModel):
    markup: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    discount: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), lt=Decimal("100"))
    markup_strategy: MarkupStrategy | None = None
    trip_start_date: date | None = None
    trip_end_date: date | None = None
    expiry_date: datetime | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _check_trip_dates(self):
        if (
            self.trip_start_date is not None
            and self.trip_end_date is not None
            and self.trip_end_date < self.trip_start_date
        ):
            raise ValueError("trip_end_date must not be before trip_start_date")
        return self


class QuoteCreate(QuoteBase):
    """Payload for creating a quote."""

    customer_id: uuid.UUID
    items: list[QuoteItemCreate] = Field(default_factory=list)


class QuoteUpdate(BaseModel):
    """Mutable quote header fields."""

    markup: Decimal | None = Field(default=None, ge=Decimal("0"))
    discount: Decimal | None = Field(default=None, ge=Decimal("0"), lt=Decimal("100"))
    markup_strategy: MarkupStrategy | None = None
    trip_start_date: date | None = None
    trip_end_date: date | None = None
    expiry_date: datetime | None = None
    notes: str | None = None


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus


class QuoteItemReorder(BaseModel):
    item_ids: list[uuid.UUID] = Field(min_length=1)


class QuoteSendRequest(BaseModel):
    """Optional overrides when emailing a quote to its customer."""

    template_key: str = "quote-ready"
    to: list[str] | None = None
    mark_as_sent: bool = True


class QuoteRead(QuoteBase):
    """Serialized quote. ``total_price`` is the engine total at last save."""

    id: uuid.UUID
    account_id: uuid.UUID
    quote_reference: str
    customer_id: uuid.UUID
    agent_id: uuid.UUID | None = None
    status: QuoteStatus
    total_price: Decimal
    created_at: datetime
    updated_at: datetime
    customer: CustomerSummary | None = None
    quote_items: list[QuoteItemRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class QuoteSummary(BaseModel):
    id: uuid.UUID
    quote_reference: str
    customer_id: uuid.UUID
    status: QuoteStatus
    total_price: Decimal
    trip_start_date: date | None = None
    trip_end_date: date | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

"""Pydantic schemas for bookings and booking operations."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from backoffice.models.booking import (
    BookingStatus,
    NotificationPriority,
    NotificationType,
    OperationStatus,
    OperationType,
    PaymentStatus,
)
from backoffice.models.quote import ItemType
from backoffice.schemas.customer import CustomerSummary


class BookingCreate(BaseModel):
    """Convert a quote into a booking."""

    quote_id: uuid.UUID
    payment_reference: str | None = None


class BookingItemRead(BaseModel):
    id: uuid.UUID
    position: int
    item_type: ItemType
    item_name: str
    cost: Decimal
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class BookingRead(BaseModel):
    """Serialized booking representation."""

    id: uuid.UUID
    account_id: uuid.UUID
    booking_reference: str
    quote_id: uuid.UUID | None = None
    customer_id: uuid.UUID
    agent_id: uuid.UUID | None = None
    status: BookingStatus
    total_price: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    payment_status: PaymentStatus
    payment_reference: str | None = None
    travel_start_date: date
    travel_end_date: date
    created_at: datetime
    updated_at: datetime
    customer: CustomerSummary | None = None
    items: list[BookingItemRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class BookingPaymentCreate(BaseModel):
    amount: Decimal = Field(gt=Decimal("0"))
    payment_reference: str | None = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingOperationCreate(BaseModel):
    operation_type: OperationType
    reason: str | None = None
    new_details: dict[str, Any] | None = None
    change_fee: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    refund_amount: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    supplier_reference: str | None = None
    notes: str | None = None


class BookingOperationUpdate(BaseModel):
    operation_status: OperationStatus | None = None
    supplier_reference: str | None = None
    notes: str | None = None


class BookingOperationRead(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    operation_type: OperationType
    operation_status: OperationStatus
    original_details: dict[str, Any] | None = None
    new_details: dict[str, Any] | None = None
    reason: str | None = None
    change_fee: Decimal
    refund_amount: Decimal
    supplier_reference: str | None = None
    notes: str | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime
    completed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class BookingNotificationRead(BaseModel):
    id: uuid.UUID
    booking_id: uuid.UUID
    notification_type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    read_at: datetime | None = None
    created_at: datetime
    extra: dict[str, Any] | None = Field(default=None, serialization_alias="metadata")

    model_config = ConfigDict(from_attributes=True)

"""Bookings converted from quotes, plus operations tracking."""

from __future__ import annotations

import datetime
import enum
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.models.mixins import TimestampMixin, enum_type
from backoffice.models.quote import JSONB_TYPE, ItemType

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from backoffice.models.customer import Customer
    from backoffice.models.quote import Quote


class BookingStatus(str, enum.Enum):
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    PENDING_CHANGE = "Pending_Change"
    CHANGE_REQUESTED = "Change_Requested"
    RESCHEDULED = "Rescheduled"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class PaymentStatus(str, enum.Enum):
    UNPAID = "Unpaid"
    PARTIAL = "Partial"
    PAID = "Paid"
    REFUNDED = "Refunded"


class OperationType(str, enum.Enum):
    AIRLINE_CHANGE = "airline_change"
    CUSTOMER_CHANGE = "customer_change"
    CANCELLATION = "cancellation"
    REBOOK = "rebook"


class OperationStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class NotificationType(str, enum.Enum):
    SCHEDULE_CHANGE = "schedule_change"
    CANCELLATION = "cancellation"
    PAYMENT_DUE = "payment_due"
    CONFIRMATION = "confirmation"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Booking(TimestampMixin, Base):
    """A confirmed trip created from a quote."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint(
            "travel_end_date >= travel_start_date", name="valid_travel_dates"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    booking_reference: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False
    )
    quote_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("quotes.id", ondelete="SET NULL")
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False
    )
    agent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    status: Mapped[BookingStatus] = mapped_column(
        enum_type(BookingStatus, "booking_status"),
        default=BookingStatus.CONFIRMED,
        nullable=False,
    )
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        enum_type(PaymentStatus, "payment_status"),
        default=PaymentStatus.UNPAID,
        nullable=False,
    )
    payment_reference: Mapped[str | None] = mapped_column(String(255))
    travel_start_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    travel_end_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    quote: Mapped["Quote | None"] = relationship("Quote")
    customer: Mapped["Customer"] = relationship("Customer")
    items: Mapped[list["BookingItem"]] = relationship(
        "BookingItem",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingItem.position",
    )
    operations: Mapped[list["BookingOperation"]] = relationship(
        "BookingOperation",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingOperation.created_at",
    )
    notifications: Mapped[list["BookingNotification"]] = relationship(
        "BookingNotification", back_populates="booking", cascade="all, delete-orphan"
    )

    @property
    def balance_due(self) -> Decimal:
        return self.total_price - self.amount_paid


class BookingItem(Base):
    """Priced snapshot of a quote item at the moment of conversion."""

    __tablename__ = "booking_items"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    item_type: Mapped[ItemType] = mapped_column(
        enum_type(ItemType, "booking_item_type"), nullable=False
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(
        JSONB_TYPE, default=dict, nullable=False
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="items")


class BookingOperation(Base):
    """A change, cancellation or rebooking handled on behalf of a booking."""

    __tablename__ = "booking_operations"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )
    operation_type: Mapped[OperationType] = mapped_column(
        enum_type(OperationType, "operation_type"), nullable=False
    )
    operation_status: Mapped[OperationStatus] = mapped_column(
        enum_type(OperationStatus, "operation_status"),
        default=OperationStatus.PENDING,
        nullable=False,
    )
    original_details: Mapped[dict[str, Any] | None] = mapped_column(JSONB_TYPE)
    new_details: Mapped[dict[str, Any] | None] = mapped_column(JSONB_TYPE)
    reason: Mapped[str | None] = mapped_column(Text)
    change_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    refund_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    supplier_reference: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.datetime.now(datetime.UTC),
    )
    completed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="operations")


class BookingNotification(Base):
    """Agent-facing alert attached to a booking."""

    __tablename__ = "booking_notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )
    notification_type: Mapped[NotificationType] = mapped_column(
        enum_type(NotificationType, "notification_type"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[NotificationPriority] = mapped_column(
        enum_type(NotificationPriority, "notification_priority"),
        default=NotificationPriority.NORMAL,
        nullable=False,
    )
    read_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.datetime.now(datetime.UTC),
    )
    extra: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB_TYPE)

    booking: Mapped["Booking"] = relationship(
        "Booking", back_populates="notifications"
    )

"""Quote and quote item models."""

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
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from backoffice.db.base import Base
from backoffice.models.mixins import TimestampMixin, enum_type

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from backoffice.models.customer import Customer
    from backoffice.models.user import User

JSONB_TYPE = JSONB().with_variant(JSON(), "sqlite")

MAX_TRIP_DURATION_DAYS = 365


class QuoteStatus(str, enum.Enum):
    """Lifecycle of a quote."""

    DRAFT = "Draft"
    SENT = "Sent"
    PUBLISHED = "Published"
    EXPIRED = "Expired"
    CONVERTED = "Converted"


class MarkupStrategy(str, enum.Enum):
    """Where the markup applied to each item comes from."""

    GLOBAL = "global"
    INDIVIDUAL = "individual"
    MIXED = "mixed"


class MarkupType(str, enum.Enum):
    """How an item-level markup is applied to cost."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ItemType(str, enum.Enum):
    """Kinds of quotable travel services."""

    FLIGHT = "Flight"
    HOTEL = "Hotel"
    TOUR = "Tour"
    TRANSFER = "Transfer"


class Quote(TimestampMixin, Base):
    """A priced travel proposal for a customer."""

    __tablename__ = "quotes"
    __table_args__ = (
        CheckConstraint("discount >= 0 AND discount < 100", name="discount_range"),
        CheckConstraint("markup >= 0", name="markup_non_negative"),
        CheckConstraint(
            "trip_end_date IS NULL OR trip_start_date IS NULL "
            "OR trip_end_date >= trip_start_date",
            name="valid_trip_dates",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    quote_reference: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False
    )
    agent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    status: Mapped[QuoteStatus] = mapped_column(
        enum_type(QuoteStatus, "quote_status"),
        default=QuoteStatus.DRAFT,
        nullable=False,
    )
    markup: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), default=Decimal("0"), nullable=False
    )
    markup_strategy: Mapped[MarkupStrategy | None] = mapped_column(
        enum_type(MarkupStrategy, "markup_strategy"), nullable=True
    )
    total_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    trip_start_date: Mapped[datetime.date | None] = mapped_column(Date)
    trip_end_date: Mapped[datetime.date | None] = mapped_column(Date)
    expiry_date: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    notes: Mapped[str | None] = mapped_column(Text)

    customer: Mapped["Customer"] = relationship("Customer", back_populates="quotes")
    agent: Mapped["User | None"] = relationship("User")
    quote_items: Mapped[list["QuoteItem"]] = relationship(
        "QuoteItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.position",
    )

    @property
    def trip_duration_days(self) -> int | None:
        """Inclusive number of calendar days covered by the trip dates."""
        if self.trip_start_date is None or self.trip_end_date is None:
            return None
        return (self.trip_end_date - self.trip_start_date).days + 1


class QuoteItem(TimestampMixin, Base):
    """A single priced line (flight, hotel stay, tour, transfer) on a quote."""

    __tablename__ = "quote_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="quantity_positive"),
        CheckConstraint("cost >= 0", name="cost_non_negative"),
        CheckConstraint("markup >= 0", name="item_markup_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    quote_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    item_type: Mapped[ItemType] = mapped_column(
        enum_type(ItemType, "item_type"), nullable=False
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    markup: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    markup_type: Mapped[MarkupType] = mapped_column(
        enum_type(MarkupType, "markup_type"),
        default=MarkupType.PERCENTAGE,
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(
        JSONB_TYPE, default=dict, nullable=False
    )

    quote: Mapped["Quote"] = relationship("Quote", back_populates="quote_items")

"""Agency-wide default and minimum markups per item family."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.models.mixins import TimestampMixin, enum_type
from backoffice.models.quote import MarkupType

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from backoffice.models.account import Account


class MarkupSettings(TimestampMixin, Base):
    """Per-account markup policy. Transfers share the flight setting."""

    __tablename__ = "markup_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    flight_markup: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("10"), nullable=False
    )
    flight_markup_type: Mapped[MarkupType] = mapped_column(
        enum_type(MarkupType, "flight_markup_type"),
        default=MarkupType.PERCENTAGE,
        nullable=False,
    )
    hotel_markup: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("15"), nullable=False
    )
    hotel_markup_type: Mapped[MarkupType] = mapped_column(
        enum_type(MarkupType, "hotel_markup_type"),
        default=MarkupType.PERCENTAGE,
        nullable=False,
    )
    activity_markup: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("20"), nullable=False
    )
    activity_markup_type: Mapped[MarkupType] = mapped_column(
        enum_type(MarkupType, "activity_markup_type"),
        default=MarkupType.PERCENTAGE,
        nullable=False,
    )

    account: Mapped["Account"] = relationship(
        "Account", back_populates="markup_settings"
    )

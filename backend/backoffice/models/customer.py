"""Customer relationship records."""

from __future__ import annotations

import datetime
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only
    from backoffice.models.account import Account
    from backoffice.models.quote import Quote
    from backoffice.models.user import User


class Customer(TimestampMixin, Base):
    """A traveller (or lead traveller) the agency quotes and books for."""

    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("account_id", "email"),)

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    agent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320))
    phone: Mapped[str | None] = mapped_column(String(32))
    passport_number: Mapped[str | None] = mapped_column(String(64))
    passport_expiry: Mapped[datetime.date | None] = mapped_column(Date)
    nationality: Mapped[str | None] = mapped_column(String(120))
    date_of_birth: Mapped[datetime.date | None] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(Text)

    account: Mapped["Account"] = relationship("Account", back_populates="customers")
    agent: Mapped["User | None"] = relationship("User")
    quotes: Mapped[list["Quote"]] = relationship(
        "Quote", back_populates="customer", passive_deletes=True
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

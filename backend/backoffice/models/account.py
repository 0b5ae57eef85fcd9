"""Account model representing a travel agency tenant."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.models.mixins import TimestampMixin


if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from backoffice.models.customer import Customer
    from backoffice.models.markup_settings import MarkupSettings
    from backoffice.models.user import User


class Account(TimestampMixin, Base):
    """A tenant account (one travel agency)."""

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    users: Mapped[list["User"]] = relationship(
        "User", back_populates="account", cascade="all, delete-orphan"
    )
    customers: Mapped[list["Customer"]] = relationship(
        "Customer", back_populates="account", cascade="all, delete-orphan"
    )
    markup_settings: Mapped["MarkupSettings | None"] = relationship(
        "MarkupSettings",
        back_populates="account",
        uselist=False,
        cascade="all, delete-orphan",
    )

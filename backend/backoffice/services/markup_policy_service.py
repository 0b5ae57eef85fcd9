"""Agency markup policy: per item family defaults doubling as minimums.

Flights and transfers share the flight setting; hotels have their own;
tours use the activity setting.
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.markup_settings import MarkupSettings
from backoffice.models.quote import ItemType, MarkupType

logger = logging.getLogger(__name__)

DEFAULT_MARKUPS: dict[str, Decimal] = {
    "flight": Decimal("10"),
    "hotel": Decimal("15"),
    "activity": Decimal("20"),
}

_FAMILY_BY_ITEM_TYPE = {
    ItemType.FLIGHT: "flight",
    ItemType.TRANSFER: "flight",
    ItemType.HOTEL: "hotel",
    ItemType.TOUR: "activity",
}


class MarkupBelowMinimumError(ValueError):
    """Raised when a percentage markup is under the agency minimum."""

    def __init__(self, item_type: ItemType, attempted: Decimal, minimum: Decimal):
        self.item_type = item_type
        self.attempted = attempted
        self.minimum = minimum
        super().__init__(
            f"{item_type.value} markup of {_pct(attempted)}% is below the minimum "
            f"required {_pct(minimum)}%. Please increase the markup to at least "
            f"{_pct(minimum)}% or update your global markup settings."
        )


def _pct(value: Decimal) -> str:
    return f"{value.normalize():f}"


def default_settings(account_id: uuid.UUID) -> MarkupSettings:
    """Unsaved settings row carrying the built-in defaults."""
    return MarkupSettings(
        account_id=account_id,
        flight_markup=DEFAULT_MARKUPS["flight"],
        flight_markup_type=MarkupType.PERCENTAGE,
        hotel_markup=DEFAULT_MARKUPS["hotel"],
        hotel_markup_type=MarkupType.PERCENTAGE,
        activity_markup=DEFAULT_MARKUPS["activity"],
        activity_markup_type=MarkupType.PERCENTAGE,
    )


async def get_markup_settings(
    session: AsyncSession, *, account_id: uuid.UUID
) -> MarkupSettings:
    """Return stored settings, or the defaults when none were saved."""
    result = await session.execute(
        select(MarkupSettings).where(MarkupSettings.account_id == account_id)
    )
    settings = result.scalar_one_or_none()
    if settings is None:
        return default_settings(account_id)
    return settings


async def update_markup_settings(
    session: AsyncSession, *, account_id: uuid.UUID, **updates: Any
) -> MarkupSettings:
    result = await session.execute(
        select(MarkupSettings).where(MarkupSettings.account_id == account_id)
    )
    settings = result.scalar_one_or_none()
    if settings is None:
        settings = default_settings(account_id)
        session.add(settings)
    for field, value in updates.items():
        if value is not None:
            setattr(settings, field, value)
    await session.commit()
    await session.refresh(settings)
    logger.info("Markup settings updated for account %s", account_id)
    return settings


def markup_for_item_type(
    item_type: ItemType | str, settings: MarkupSettings
) -> tuple[Decimal, MarkupType]:
    """Configured markup and markup type for ``item_type``."""
    family = _FAMILY_BY_ITEM_TYPE.get(ItemType(item_type), "activity")
    amount = getattr(settings, f"{family}_markup")
    markup_type = getattr(settings, f"{family}_markup_type")
    if amount is None:
        amount = DEFAULT_MARKUPS[family]
    return Decimal(amount), markup_type or MarkupType.PERCENTAGE


def default_markup_for_item(
    item_type: ItemType | str, settings: MarkupSettings
) -> tuple[Decimal, MarkupType]:
    """Markup pre-filled on a new item that does not carry one."""
    return markup_for_item_type(item_type, settings)


def validate_markup(
    item_type: ItemType | str,
    proposed: Decimal,
    markup_type: MarkupType,
    settings: MarkupSettings,
) -> None:
    """Reject percentage markups under the configured minimum.

    Fixed markups are amounts, not percentages, and are not compared.
    """
    if markup_type is not MarkupType.PERCENTAGE:
        return
    minimum, minimum_type = markup_for_item_type(item_type, settings)
    if minimum_type is not MarkupType.PERCENTAGE:
        return
    if Decimal(proposed) < minimum:
        raise MarkupBelowMinimumError(ItemType(item_type), Decimal(proposed), minimum)

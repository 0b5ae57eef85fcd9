"""Quote management service helpers.

Every mutation refreshes ``Quote.total_price`` from the pricing engine, so
the stored snapshot always equals what the engine returns for the quote.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.core.config import get_settings
from backoffice.models.customer import Customer
from backoffice.models.markup_settings import MarkupSettings
from backoffice.models.quote import (
    ItemType,
    MarkupStrategy,
    MarkupType,
    Quote,
    QuoteItem,
    QuoteStatus,
)
from backoffice.schemas.quote import parse_item_details
from backoffice.services import markup_policy_service, pricing_engine

logger = logging.getLogger(__name__)

_ALLOWED_STATUS_TRANSITIONS: dict[QuoteStatus, set[QuoteStatus]] = {
    QuoteStatus.DRAFT: {QuoteStatus.SENT, QuoteStatus.PUBLISHED, QuoteStatus.EXPIRED},
    QuoteStatus.SENT: {
        QuoteStatus.DRAFT,
        QuoteStatus.PUBLISHED,
        QuoteStatus.EXPIRED,
        QuoteStatus.CONVERTED,
    },
    QuoteStatus.PUBLISHED: {
        QuoteStatus.DRAFT,
        QuoteStatus.SENT,
        QuoteStatus.EXPIRED,
        QuoteStatus.CONVERTED,
    },
    QuoteStatus.EXPIRED: {QuoteStatus.DRAFT},
    QuoteStatus.CONVERTED: set(),
}

_CLIENT_VISIBLE_STATUSES = {QuoteStatus.SENT, QuoteStatus.PUBLISHED}
_PRICING_FIELDS = ("markup", "discount", "markup_strategy")
_ITEM_PRICING_FIELDS = ("cost", "markup", "markup_type", "quantity", "details")


class QuoteNotEditableError(ValueError):
    """Raised when pricing changes are attempted outside the Draft status."""


def _base_quote_query():
    return select(Quote).options(
        selectinload(Quote.quote_items), selectinload(Quote.customer)
    )


def _ensure_draft(quote: Quote) -> None:
    if quote.status != QuoteStatus.DRAFT:
        raise QuoteNotEditableError(
            f"Quote {quote.quote_reference} is {quote.status.value}; "
            "move it back to Draft to change pricing"
        )


def _ensure_not_converted(quote: Quote) -> None:
    if quote.status == QuoteStatus.CONVERTED:
        raise QuoteNotEditableError(
            f"Quote {quote.quote_reference} has been converted to a booking"
        )


def _validate_trip_dates(start: date | None, end: date | None) -> None:
    if start is not None and end is not None and end < start:
        raise ValueError("Trip end date must not be before the start date")


def refresh_total(quote: Quote) -> Decimal:
    """Store the engine total on ``quote`` and return it."""
    quote.total_price = pricing_engine.round_money(
        pricing_engine.calculate_quote_total(quote)
    )
    return quote.total_price


async def _generate_quote_reference(session: AsyncSession, today: date) -> str:
    prefix = f"Q-{today.year}-"
    count = await session.scalar(
        select(func.count(Quote.id)).where(Quote.quote_reference.like(f"{prefix}%"))
    )
    return f"{prefix}{(count or 0) + 1:04d}"


async def _reload(session: AsyncSession, quote_id: uuid.UUID) -> Quote:
    stmt = (
        _base_quote_query()
        .where(Quote.id == quote_id)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalars().unique().one()


async def _commit(session: AsyncSession, quote: Quote) -> Quote:
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    return await _reload(session, quote.id)


def _build_item(
    quote: Quote,
    policy: MarkupSettings,
    *,
    position: int,
    item_type: ItemType | str,
    item_name: str,
    cost: Decimal,
    markup: Decimal | None = None,
    markup_type: MarkupType | str = MarkupType.PERCENTAGE,
    quantity: int | None = None,
    details: Mapping[str, Any] | None = None,
) -> QuoteItem:
    item_type = ItemType(item_type)
    markup_type = MarkupType(markup_type)
    normalised = parse_item_details(item_type, dict(details or {})).model_dump(
        mode="json", exclude_none=True
    )
    if markup is None:
        markup = Decimal("0")
        if quote.markup_strategy == MarkupStrategy.INDIVIDUAL:
            markup, markup_type = markup_policy_service.default_markup_for_item(
                item_type, policy
            )
    elif markup > 0:
        markup_policy_service.validate_markup(item_type, markup, markup_type, policy)
    if quantity is None:
        quantity = (
            pricing_engine.hotel_nights({"details": normalised})
            if item_type is ItemType.HOTEL
            else 1
        )
    return QuoteItem(
        position=position,
        item_type=item_type,
        item_name=item_name,
        cost=cost,
        markup=markup,
        markup_type=markup_type,
        quantity=quantity,
        details=normalised,
    )


async def list_quotes(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    status: QuoteStatus | None = None,
    customer_id: uuid.UUID | None = None,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[Quote]:
    stmt = _base_quote_query().where(Quote.account_id == account_id)
    if status is not None:
        stmt = stmt.where(Quote.status == status)
    if customer_id is not None:
        stmt = stmt.where(Quote.customer_id == customer_id)
    stmt = stmt.order_by(Quote.created_at.desc()).offset(skip).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().unique().all()


async def get_quote(
    session: AsyncSession, *, account_id: uuid.UUID, quote_id: uuid.UUID
) -> Quote | None:
    stmt = _base_quote_query().where(
        Quote.id == quote_id, Quote.account_id == account_id
    )
    result = await session.execute(stmt)
    return result.scalars().unique().one_or_none()


async def get_quote_by_reference(
    session: AsyncSession, *, quote_reference: str, client_visible_only: bool = True
) -> Quote | None:
    """Look a quote up by its public reference, for the client portal."""
    stmt = _base_quote_query().where(Quote.quote_reference == quote_reference)
    if client_visible_only:
        stmt = stmt.where(Quote.status.in_(_CLIENT_VISIBLE_STATUSES))
    result = await session.execute(stmt)
    return result.scalars().unique().one_or_none()


async def create_quote(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    customer_id: uuid.UUID,
    agent_id: uuid.UUID | None = None,
    markup: Decimal = Decimal("0"),
    discount: Decimal = Decimal("0"),
    markup_strategy: MarkupStrategy | None = None,
    trip_start_date: date | None = None,
    trip_end_date: date | None = None,
    expiry_date: datetime | None = None,
    notes: str | None = None,
    items: Iterable[Mapping[str, Any]] = (),
) -> Quote:
    """Create a Draft quote, optionally with its initial items."""
    customer = await session.get(Customer, customer_id)
    if customer is None or customer.account_id != account_id:
        raise ValueError("Customer not found for account")
    _validate_trip_dates(trip_start_date, trip_end_date)

    now = datetime.now(UTC)
    if expiry_date is None:
        expiry_date = now + timedelta(days=get_settings().quote_validity_days)

    quote = Quote(
        account_id=account_id,
        quote_reference=await _generate_quote_reference(session, now.date()),
        customer_id=customer_id,
        agent_id=agent_id,
        status=QuoteStatus.DRAFT,
        markup=markup,
        discount=discount,
        markup_strategy=markup_strategy,
        trip_start_date=trip_start_date,
        trip_end_date=trip_end_date,
        expiry_date=expiry_date,
        notes=notes,
        quote_items=[],
    )
    items = list(items)
    if items:
        policy = await markup_policy_service.get_markup_settings(
            session, account_id=account_id
        )
        for position, payload in enumerate(items):
            quote.quote_items.append(
                _build_item(quote, policy, position=position, **payload)
            )
    refresh_total(quote)
    session.add(quote)
    quote = await _commit(session, quote)
    logger.info("Created quote %s (total %s)", quote.quote_reference, quote.total_price)
    return quote


async def update_quote(session: AsyncSession, quote: Quote, **updates: Any) -> Quote:
    """Update header fields. Markup, discount and strategy require Draft."""
    _ensure_not_converted(quote)
    for field in ("markup", "discount"):
        if field in updates and updates[field] is None:
            updates.pop(field)
    if any(
        field in updates and updates[field] != getattr(quote, field)
        for field in _PRICING_FIELDS
    ):
        _ensure_draft(quote)
    _validate_trip_dates(
        updates.get("trip_start_date", quote.trip_start_date),
        updates.get("trip_end_date", quote.trip_end_date),
    )
    for field, value in updates.items():
        setattr(quote, field, value)
    refresh_total(quote)
    return await _commit(session, quote)


async def change_status(
    session: AsyncSession, quote: Quote, status: QuoteStatus
) -> Quote:
    if status == quote.status:
        return quote
    if status == QuoteStatus.CONVERTED:
        raise ValueError("Quotes are converted by creating a booking")
    allowed = _ALLOWED_STATUS_TRANSITIONS.get(quote.status, set())
    if status not in allowed:
        raise ValueError(
            f"Cannot change quote status from {quote.status.value} to {status.value}"
        )
    if status in _CLIENT_VISIBLE_STATUSES and not quote.quote_items:
        raise ValueError("Add at least one item before sharing a quote")
    quote.status = status
    refresh_total(quote)
    return await _commit(session, quote)


def get_item(quote: Quote, item_id: uuid.UUID) -> QuoteItem | None:
    for item in quote.quote_items:
        if item.id == item_id:
            return item
    return None


async def add_item(session: AsyncSession, quote: Quote, **payload: Any) -> Quote:
    _ensure_draft(quote)
    policy = await markup_policy_service.get_markup_settings(
        session, account_id=quote.account_id
    )
    item = _build_item(quote, policy, position=len(quote.quote_items), **payload)
    quote.quote_items.append(item)
    refresh_total(quote)
    return await _commit(session, quote)


async def update_item(
    session: AsyncSession, quote: Quote, item: QuoteItem, **updates: Any
) -> Quote:
    if any(updates.get(field) is not None for field in _ITEM_PRICING_FIELDS):
        _ensure_draft(quote)
    else:
        _ensure_not_converted(quote)
    updates = {field: value for field, value in updates.items() if value is not None}
    if "details" in updates:
        updates["details"] = parse_item_details(
            item.item_type, updates["details"]
        ).model_dump(mode="json", exclude_none=True)
        if item.item_type is ItemType.HOTEL and "quantity" not in updates:
            updates["quantity"] = pricing_engine.hotel_nights(
                {"details": updates["details"]}
            )
    markup = updates.get("markup", item.markup)
    markup_type = MarkupType(updates.get("markup_type", item.markup_type))
    if ("markup" in updates or "markup_type" in updates) and markup > 0:
        policy = await markup_policy_service.get_markup_settings(
            session, account_id=quote.account_id
        )
        markup_policy_service.validate_markup(
            item.item_type, markup, markup_type, policy
        )
    for field, value in updates.items():
        setattr(item, field, value)
    refresh_total(quote)
    return await _commit(session, quote)


async def delete_item(session: AsyncSession, quote: Quote, item: QuoteItem) -> Quote:
    _ensure_draft(quote)
    quote.quote_items.remove(item)
    for position, remaining in enumerate(quote.quote_items):
        remaining.position = position
    refresh_total(quote)
    return await _commit(session, quote)


async def reorder_items(
    session: AsyncSession, quote: Quote, item_ids: Sequence[uuid.UUID]
) -> Quote:
    """Rewrite item positions. Order has no effect on any total."""
    _ensure_not_converted(quote)
    by_id = {item.id: item for item in quote.quote_items}
    if len(item_ids) != len(by_id) or set(item_ids) != set(by_id):
        raise ValueError("Reorder must list every item of the quote exactly once")
    for position, item_id in enumerate(item_ids):
        by_id[item_id].position = position
    return await _commit(session, quote)


async def expire_quotes(
    session: AsyncSession, *, account_id: uuid.UUID, now: datetime | None = None
) -> int:
    """Mark shared quotes whose expiry date has passed as Expired."""
    now = now or datetime.now(UTC)
    result = await session.execute(
        select(Quote).where(
            Quote.account_id == account_id,
            Quote.status.in_(_CLIENT_VISIBLE_STATUSES),
            Quote.expiry_date.is_not(None),
            Quote.expiry_date < now,
        )
    )
    expired = result.scalars().all()
    for quote in expired:
        quote.status = QuoteStatus.EXPIRED
    if expired:
        await session.commit()
        logger.info("Expired %d quotes for account %s", len(expired), account_id)
    return len(expired)

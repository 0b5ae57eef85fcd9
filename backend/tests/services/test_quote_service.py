from __future__ import annotations

import re
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest

from backoffice.db.session import get_sessionmaker
from backoffice.models import (
    Account,
    Customer,
    ItemType,
    MarkupStrategy,
    MarkupType,
    QuoteStatus,
)
from backoffice.services import markup_policy_service, pricing_engine, quote_service
from backoffice.services.markup_policy_service import MarkupBelowMinimumError
from backoffice.services.quote_service import QuoteNotEditableError


async def _seed(session) -> tuple[Account, Customer]:
    account = Account(name="Quote Travel", slug="quote-travel")
    session.add(account)
    await session.flush()
    customer = Customer(
        account_id=account.id,
        first_name="Robin",
        last_name="Fields",
        email="robin@example.com",
    )
    session.add(customer)
    await session.commit()
    return account, customer


@pytest.mark.asyncio
async def test_create_quote_prices_items_and_stores_total(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, customer = await _seed(session)
        quote = await quote_service.create_quote(
            session,
            account_id=account.id,
            customer_id=customer.id,
            markup_strategy=MarkupStrategy.INDIVIDUAL,
            discount=Decimal("10"),
            trip_start_date=date(2026, 6, 1),
            trip_end_date=date(2026, 6, 4),
            items=[
                {
                    "item_type": ItemType.TOUR,
                    "item_name": "City walk",
                    "cost": Decimal("100"),
                    "markup": Decimal("25"),
                },
                {
                    "item_type": ItemType.HOTEL,
                    "item_name": "Harbour Hotel",
                    "cost": Decimal("200"),
                    "details": {"nights": 3, "room_type": "double"},
                },
            ],
        )

        assert re.fullmatch(rf"Q-{datetime.now(UTC).year}-0001", quote.quote_reference)
        assert quote.status == QuoteStatus.DRAFT
        assert quote.trip_duration_days == 4
        hotel = quote.quote_items[1]
        assert hotel.quantity == 3
        assert hotel.markup == Decimal("15")
        assert hotel.details["room_type"] == "double"
        # 125 + 230 * 3 = 815, less 10%
        assert quote.total_price == Decimal("733.50")
        assert quote.total_price == pricing_engine.round_money(
            pricing_engine.calculate_quote_total(quote)
        )
        assert quote.expiry_date is not None


@pytest.mark.asyncio
async def test_markup_below_agency_minimum_is_rejected(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, customer = await _seed(session)
        quote = await quote_service.create_quote(
            session, account_id=account.id, customer_id=customer.id
        )
        with pytest.raises(MarkupBelowMinimumError) as excinfo:
            await quote_service.add_item(
                session,
                quote,
                item_type=ItemType.FLIGHT,
                item_name="Outbound",
                cost=Decimal("300"),
                markup=Decimal("5"),
            )
        assert "below the minimum required 10%" in str(excinfo.value)
        assert excinfo.value.minimum == Decimal("10")

        # a flat amount is not compared against percentage minimums
        updated = await quote_service.add_item(
            session,
            quote,
            item_type=ItemType.FLIGHT,
            item_name="Outbound",
            cost=Decimal("300"),
            markup=Decimal("5"),
            markup_type=MarkupType.FIXED,
        )
        assert updated.total_price == Decimal("305.00")


@pytest.mark.asyncio
async def test_updated_policy_drives_minimums(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, customer = await _seed(session)
        await markup_policy_service.update_markup_settings(
            session, account_id=account.id, activity_markup=Decimal("30")
        )
        settings = await markup_policy_service.get_markup_settings(
            session, account_id=account.id
        )
        assert markup_policy_service.markup_for_item_type(ItemType.TOUR, settings) == (
            Decimal("30"),
            MarkupType.PERCENTAGE,
        )
        markup_policy_service.validate_markup(
            ItemType.TOUR, Decimal("30"), MarkupType.PERCENTAGE, settings
        )
        with pytest.raises(MarkupBelowMinimumError, match="below the minimum"):
            markup_policy_service.validate_markup(
                ItemType.TOUR, Decimal("25"), MarkupType.PERCENTAGE, settings
            )

        quote = await quote_service.create_quote(
            session, account_id=account.id, customer_id=customer.id
        )
        with pytest.raises(MarkupBelowMinimumError):
            await quote_service.add_item(
                session,
                quote,
                item_type=ItemType.TOUR,
                item_name="Safari",
                cost=Decimal("500"),
                markup=Decimal("25"),
            )


@pytest.mark.asyncio
async def test_pricing_locked_outside_draft(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, customer = await _seed(session)
        quote = await quote_service.create_quote(
            session,
            account_id=account.id,
            customer_id=customer.id,
            markup=Decimal("10"),
        )
        with pytest.raises(ValueError, match="at least one item"):
            await quote_service.change_status(session, quote, QuoteStatus.SENT)

        quote = await quote_service.add_item(
            session,
            quote,
            item_type=ItemType.TRANSFER,
            item_name="Airport pickup",
            cost=Decimal("40"),
        )
        quote = await quote_service.change_status(session, quote, QuoteStatus.SENT)
        with pytest.raises(QuoteNotEditableError):
            await quote_service.update_quote(session, quote, discount=Decimal("5"))
        with pytest.raises(QuoteNotEditableError):
            await quote_service.update_item(
                session, quote, quote.quote_items[0], cost=Decimal("45")
            )

        quote = await quote_service.update_quote(session, quote, notes="Window seats")
        assert quote.notes == "Window seats"
        assert quote.total_price == Decimal("44.00")
        quote = await quote_service.update_quote(
            session, quote, markup=None, discount=None, notes="Aisle seats"
        )
        assert quote.notes == "Aisle seats"
        assert quote.markup == Decimal("10")

        with pytest.raises(ValueError, match="booking"):
            await quote_service.change_status(session, quote, QuoteStatus.CONVERTED)

        quote = await quote_service.change_status(session, quote, QuoteStatus.DRAFT)
        quote = await quote_service.update_quote(session, quote, discount=Decimal("50"))
        assert quote.total_price == Decimal("22.00")


@pytest.mark.asyncio
async def test_hotel_nights_follow_updated_details(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, customer = await _seed(session)
        quote = await quote_service.create_quote(
            session,
            account_id=account.id,
            customer_id=customer.id,
            markup=Decimal("10"),
            items=[
                {
                    "item_type": ItemType.HOTEL,
                    "item_name": "Harbour Hotel",
                    "cost": Decimal("100"),
                    "details": {"nights": 3},
                }
            ],
        )
        hotel = quote.quote_items[0]
        assert hotel.quantity == 3
        assert quote.total_price == Decimal("330.00")

        quote = await quote_service.update_item(
            session, quote, hotel, details={"nights": 5}
        )
        assert hotel.quantity == 5
        assert quote.total_price == Decimal("550.00")

        quote = await quote_service.update_item(
            session,
            quote,
            hotel,
            details={"check_in_date": "2026-06-01", "check_out_date": "2026-06-03"},
        )
        assert hotel.quantity == 2
        assert quote.total_price == Decimal("220.00")

        quote = await quote_service.update_item(
            session, quote, hotel, details={"nights": 6}, quantity=4
        )
        assert hotel.quantity == 4
        assert quote.total_price == Decimal("440.00")

@pytest.mark.asyncio
async def test_item_removal_and_reorder(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, customer = await _seed(session)
        quote = await quote_service.create_quote(
            session,
            account_id=account.id,
            customer_id=customer.id,
            markup=Decimal("10"),
            items=[
                {"item_type": "Flight", "item_name": "Leg 1", "cost": Decimal("100")},
                {"item_type": "Flight", "item_name": "Leg 2", "cost": Decimal("200")},
                {"item_type": "Tour", "item_name": "Museum", "cost": Decimal("50")},
            ],
        )
        assert quote.total_price == Decimal("385.00")

        reversed_ids = [item.id for item in reversed(quote.quote_items)]
        quote = await quote_service.reorder_items(session, quote, reversed_ids)
        assert [item.item_name for item in quote.quote_items] == ["Museum", "Leg 2", "Leg 1"]
        assert quote.total_price == Decimal("385.00")

        with pytest.raises(ValueError):
            await quote_service.reorder_items(session, quote, reversed_ids[:2])

        quote = await quote_service.delete_item(session, quote, quote.quote_items[1])
        assert [item.position for item in quote.quote_items] == [0, 1]
        assert quote.total_price == Decimal("165.00")


@pytest.mark.asyncio
async def test_expire_quotes_and_reference_lookup(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, customer = await _seed(session)
        quote = await quote_service.create_quote(
            session,
            account_id=account.id,
            customer_id=customer.id,
            expiry_date=datetime.now(UTC) - timedelta(days=1),
            items=[{"item_type": "Tour", "item_name": "Boat", "cost": Decimal("80")}],
        )
        assert (
            await quote_service.get_quote_by_reference(
                session, quote_reference=quote.quote_reference
            )
            is None
        )
        quote = await quote_service.change_status(session, quote, QuoteStatus.PUBLISHED)
        found = await quote_service.get_quote_by_reference(
            session, quote_reference=quote.quote_reference
        )
        assert found is not None and found.id == quote.id

        expired = await quote_service.expire_quotes(session, account_id=account.id)
        assert expired == 1
        refreshed = await quote_service.get_quote(
            session, account_id=account.id, quote_id=quote.id
        )
        assert refreshed is not None
        assert refreshed.status == QuoteStatus.EXPIRED

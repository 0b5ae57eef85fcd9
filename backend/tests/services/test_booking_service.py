from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from backoffice.db.session import get_sessionmaker
from backoffice.models import (
    Account,
    BookingStatus,
    Customer,
    MarkupStrategy,
    NotificationPriority,
    NotificationType,
    OperationStatus,
    OperationType,
    PaymentStatus,
    QuoteStatus,
)
from backoffice.services import booking_service, pricing_engine, quote_service


async def _seed_quote(session):
    account = Account(name="Booking Travel", slug="booking-travel")
    session.add(account)
    await session.flush()
    customer = Customer(account_id=account.id, first_name="Sam", last_name="Rivers")
    session.add(customer)
    await session.commit()
    quote = await quote_service.create_quote(
        session,
        account_id=account.id,
        customer_id=customer.id,
        markup_strategy=MarkupStrategy.MIXED,
        markup=Decimal("5"),
        discount=Decimal("2.5"),
        trip_start_date=date(2026, 9, 10),
        trip_end_date=date(2026, 9, 13),
        items=[
            {
                "item_type": "Hotel",
                "item_name": "Lakeside Inn",
                "cost": Decimal("120.55"),
                "markup": Decimal("17.5"),
                "details": {
                    "check_in_date": "2026-09-10",
                    "check_out_date": "2026-09-13",
                },
            },
            {"item_type": "Flight", "item_name": "Return flight", "cost": Decimal("410")},
        ],
    )
    return account, quote


@pytest.mark.asyncio
async def test_convert_quote_uses_engine_total(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, quote = await _seed_quote(session)
        expected = pricing_engine.round_money(pricing_engine.calculate_quote_total(quote))
        assert quote.total_price == expected

        booking = await booking_service.convert_quote(
            session, account_id=account.id, quote_id=quote.id
        )

        assert booking.booking_reference.startswith("BKG-")
        assert booking.total_price == expected
        assert booking.travel_start_date == date(2026, 9, 10)
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.payment_status == PaymentStatus.UNPAID

        hotel, flight = booking.items
        assert hotel.quantity == 3
        assert hotel.unit_price == pricing_engine.round_money(
            pricing_engine.calculate_item_price(quote.quote_items[0], quote)
        )
        assert flight.total_price == Decimal("430.50")

        converted = await quote_service.get_quote(
            session, account_id=account.id, quote_id=quote.id
        )
        assert converted is not None
        assert converted.status == QuoteStatus.CONVERTED

        notifications = await booking_service.list_notifications(
            session, account_id=account.id
        )
        assert len(notifications) == 1
        assert notifications[0].notification_type == NotificationType.CONFIRMATION
        assert notifications[0].extra["pricing"]["total"] == f"{expected:.2f}"

        with pytest.raises(ValueError):
            await booking_service.convert_quote(
                session, account_id=account.id, quote_id=quote.id
            )


@pytest.mark.asyncio
async def test_convert_missing_quote(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, quote = await _seed_quote(session)
        with pytest.raises(LookupError):
            await booking_service.convert_quote(
                session, account_id=account.id, quote_id=account.id
            )


@pytest.mark.asyncio
async def test_payments_track_balance(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, quote = await _seed_quote(session)
        booking = await booking_service.convert_quote(
            session, account_id=account.id, quote_id=quote.id
        )
        total = booking.total_price

        booking = await booking_service.record_payment(
            session, booking, amount=Decimal("100"), payment_reference="DEP-1"
        )
        assert booking.payment_status == PaymentStatus.PARTIAL
        assert booking.balance_due == total - Decimal("100")

        with pytest.raises(ValueError, match="exceeds balance"):
            await booking_service.record_payment(session, booking, amount=total)

        booking = await booking_service.record_payment(
            session, booking, amount=booking.balance_due
        )
        assert booking.payment_status == PaymentStatus.PAID
        assert booking.balance_due == Decimal("0")
        assert booking.payment_reference == "DEP-1"


@pytest.mark.asyncio
async def test_cancellation_refunds_and_closes_booking(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, quote = await _seed_quote(session)
        booking = await booking_service.convert_quote(
            session, account_id=account.id, quote_id=quote.id
        )
        booking = await booking_service.record_payment(
            session, booking, amount=Decimal("200")
        )

        with pytest.raises(ValueError, match="Refund"):
            await booking_service.create_operation(
                session,
                booking,
                operation_type=OperationType.CANCELLATION,
                refund_amount=Decimal("250"),
            )

        operation = await booking_service.create_operation(
            session,
            booking,
            operation_type=OperationType.CANCELLATION,
            reason="Customer request",
            refund_amount=Decimal("150"),
        )
        assert operation.operation_status == OperationStatus.PENDING
        assert operation.original_details["status"] == "Confirmed"

        operation = await booking_service.update_operation(
            session, booking, operation, operation_status=OperationStatus.COMPLETED
        )
        assert operation.completed_at is not None

        booking = await booking_service.get_booking(
            session, account_id=account.id, booking_id=booking.id
        )
        assert booking is not None
        assert booking.status == BookingStatus.CANCELLED
        assert booking.amount_paid == Decimal("50")
        assert booking.payment_status == PaymentStatus.REFUNDED

        with pytest.raises(ValueError):
            await booking_service.update_status(session, booking, BookingStatus.CONFIRMED)

        unread = await booking_service.unread_notification_count(
            session, account_id=account.id
        )
        assert unread == 2
        notifications = await booking_service.list_notifications(
            session, account_id=account.id, unread_only=True
        )
        cancellation = next(
            n for n in notifications if n.notification_type == NotificationType.CANCELLATION
        )
        assert cancellation.priority == NotificationPriority.HIGH
        await booking_service.mark_notification_read(
            session, account_id=account.id, notification_id=cancellation.id
        )
        assert (
            await booking_service.unread_notification_count(session, account_id=account.id)
            == 1
        )


@pytest.mark.asyncio
async def test_change_operation_reschedules(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        account, quote = await _seed_quote(session)
        booking = await booking_service.convert_quote(
            session, account_id=account.id, quote_id=quote.id
        )
        total = booking.total_price

        operation = await booking_service.create_operation(
            session,
            booking,
            operation_type=OperationType.AIRLINE_CHANGE,
            new_details={
                "travel_start_date": "2026-09-11",
                "travel_end_date": "2026-09-14",
            },
            change_fee=Decimal("35"),
        )
        assert booking.status == BookingStatus.PENDING_CHANGE

        await booking_service.update_operation(
            session,
            booking,
            operation,
            operation_status=OperationStatus.COMPLETED,
            supplier_reference="PNR123",
        )
        booking = await booking_service.get_booking(
            session, account_id=account.id, booking_id=booking.id
        )
        assert booking is not None
        assert booking.status == BookingStatus.RESCHEDULED
        assert booking.travel_start_date == date(2026, 9, 11)
        assert booking.total_price == total

        operations = await booking_service.list_operations(session, booking)
        assert [op.supplier_reference for op in operations] == ["PNR123"]

        with pytest.raises(ValueError, match="closed"):
            await booking_service.update_operation(
                session, booking, operation, operation_status=OperationStatus.FAILED
            )

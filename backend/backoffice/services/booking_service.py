"""Booking conversion, payments and operations tracking."""
from __future__ import annotations

import logging
import secrets
import string
import uuid
from collections.abc import Sequence
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.models.booking import (
    Booking,
    BookingItem,
    BookingNotification,
    BookingOperation,
    BookingStatus,
    NotificationPriority,
    NotificationType,
    OperationStatus,
    OperationType,
    PaymentStatus,
)
from backoffice.models.quote import Quote, QuoteStatus
from backoffice.services import pricing_engine, quote_service

logger = logging.getLogger(__name__)

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
_CONVERTIBLE_STATUSES = {QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.PUBLISHED}
_CLOSED_STATUSES = {BookingStatus.CANCELLED, BookingStatus.COMPLETED}
_CHANGE_OPERATIONS = {
    OperationType.AIRLINE_CHANGE,
    OperationType.CUSTOMER_CHANGE,
    OperationType.REBOOK,
}
_ZERO = Decimal("0")


def _generate_booking_reference(today: date) -> str:
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(5))
    return f"BKG-{today:%Y%m%d}-{suffix}"


def _base_booking_query(account_id: uuid.UUID):
    return (
        select(Booking)
        .options(selectinload(Booking.items), selectinload(Booking.customer))
        .where(Booking.account_id == account_id)
    )


async def _reload(session: AsyncSession, booking: Booking) -> Booking:
    stmt = (
        _base_booking_query(booking.account_id)
        .where(Booking.id == booking.id)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalars().unique().one()


def _notify(
    booking: Booking,
    notification_type: NotificationType,
    title: str,
    message: str,
    priority: NotificationPriority = NotificationPriority.NORMAL,
    extra: dict[str, Any] | None = None,
) -> BookingNotification:
    notification = BookingNotification(
        notification_type=notification_type,
        title=title,
        message=message,
        priority=priority,
        extra=extra,
    )
    notification.booking = booking
    return notification


def _travel_dates(quote: Quote) -> tuple[date, date]:
    start = quote.trip_start_date or datetime.now(UTC).date()
    end = quote.trip_end_date or start
    return start, end


async def list_bookings(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    status: BookingStatus | None = None,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[Booking]:
    stmt = _base_booking_query(account_id)
    if status is not None:
        stmt = stmt.where(Booking.status == status)
    stmt = stmt.order_by(Booking.created_at.desc()).offset(skip).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().unique().all()


async def get_booking(
    session: AsyncSession, *, account_id: uuid.UUID, booking_id: uuid.UUID
) -> Booking | None:
    stmt = _base_booking_query(account_id).where(Booking.id == booking_id)
    result = await session.execute(stmt)
    return result.scalars().unique().one_or_none()


async def convert_quote(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    quote_id: uuid.UUID,
    agent_id: uuid.UUID | None = None,
    payment_reference: str | None = None,
) -> Booking:
    """Turn a quote into a booking priced by the pricing engine.

    The booking total is the engine's discounted, marked-up quote total.
    Item snapshots carry the engine's unit price and line total.
    """
    quote = await quote_service.get_quote(
        session, account_id=account_id, quote_id=quote_id
    )
    if quote is None:
        raise LookupError("Quote not found")
    if quote.status not in _CONVERTIBLE_STATUSES:
        raise ValueError(f"Quote in status {quote.status.value} cannot be converted")
    if not quote.quote_items:
        raise ValueError("Quote has no items to book")

    pricing = pricing_engine.price_quote(quote)
    total = pricing_engine.round_money(pricing.total)
    travel_start, travel_end = _travel_dates(quote)
    booking = Booking(
        account_id=account_id,
        booking_reference=_generate_booking_reference(datetime.now(UTC).date()),
        quote_id=quote.id,
        customer_id=quote.customer_id,
        agent_id=agent_id or quote.agent_id,
        status=BookingStatus.CONFIRMED,
        total_price=total,
        amount_paid=_ZERO,
        payment_status=PaymentStatus.UNPAID,
        payment_reference=payment_reference,
        travel_start_date=travel_start,
        travel_end_date=travel_end,
    )
    for item, line in zip(quote.quote_items, pricing.lines):
        booking.items.append(
            BookingItem(
                position=item.position,
                item_type=item.item_type,
                item_name=item.item_name,
                cost=item.cost,
                quantity=line.quantity,
                unit_price=pricing_engine.round_money(line.unit_price),
                total_price=pricing_engine.round_money(line.total),
                details=dict(item.details or {}),
            )
        )
    _notify(
        booking,
        NotificationType.CONFIRMATION,
        f"Booking {booking.booking_reference} confirmed",
        f"Quote {quote.quote_reference} converted for "
        f"{pricing_engine.format_price(total)}.",
        extra={"quote_reference": quote.quote_reference, "pricing": pricing.to_dict()},
    )
    quote.status = QuoteStatus.CONVERTED
    quote.total_price = total
    session.add(booking)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    logger.info(
        "Converted quote %s into booking %s", quote.quote_reference, booking.booking_reference
    )
    return await _reload(session, booking)


def _payment_status(booking: Booking) -> PaymentStatus:
    if booking.amount_paid <= _ZERO:
        return PaymentStatus.UNPAID
    if booking.amount_paid >= booking.total_price:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


async def record_payment(
    session: AsyncSession,
    booking: Booking,
    *,
    amount: Decimal,
    payment_reference: str | None = None,
) -> Booking:
    if amount <= _ZERO:
        raise ValueError("Payment amount must be positive")
    if booking.status == BookingStatus.CANCELLED:
        raise ValueError("Cannot take payment for a cancelled booking")
    if booking.amount_paid + amount > booking.total_price:
        raise ValueError(
            f"Payment exceeds balance due of {pricing_engine.format_price(booking.balance_due)}"
        )
    booking.amount_paid = booking.amount_paid + amount
    booking.payment_status = _payment_status(booking)
    if payment_reference:
        booking.payment_reference = payment_reference
    await session.commit()
    return await _reload(session, booking)


async def update_status(
    session: AsyncSession, booking: Booking, status: BookingStatus
) -> Booking:
    if status == booking.status:
        return booking
    if booking.status in _CLOSED_STATUSES:
        raise ValueError(f"Booking is {booking.status.value} and cannot change status")
    booking.status = status
    await session.commit()
    return await _reload(session, booking)


async def list_operations(
    session: AsyncSession, booking: Booking
) -> Sequence[BookingOperation]:
    result = await session.execute(
        select(BookingOperation)
        .where(BookingOperation.booking_id == booking.id)
        .order_by(BookingOperation.created_at)
    )
    return result.scalars().all()


async def create_operation(
    session: AsyncSession,
    booking: Booking,
    *,
    operation_type: OperationType,
    created_by: uuid.UUID | None = None,
    reason: str | None = None,
    new_details: dict[str, Any] | None = None,
    change_fee: Decimal = _ZERO,
    refund_amount: Decimal = _ZERO,
    supplier_reference: str | None = None,
    notes: str | None = None,
) -> BookingOperation:
    """Open a change, cancellation or rebooking against ``booking``."""
    if booking.status in _CLOSED_STATUSES:
        raise ValueError(f"Booking is {booking.status.value}; no further operations")
    if refund_amount > booking.amount_paid:
        raise ValueError("Refund cannot exceed the amount paid")
    operation = BookingOperation(
        booking_id=booking.id,
        operation_type=operation_type,
        operation_status=OperationStatus.PENDING,
        original_details={
            "status": booking.status.value,
            "travel_start_date": booking.travel_start_date.isoformat(),
            "travel_end_date": booking.travel_end_date.isoformat(),
        },
        new_details=new_details,
        reason=reason,
        change_fee=change_fee,
        refund_amount=refund_amount,
        supplier_reference=supplier_reference,
        notes=notes,
        created_by=created_by,
    )
    session.add(operation)
    if operation_type in _CHANGE_OPERATIONS:
        booking.status = BookingStatus.PENDING_CHANGE
    if operation_type is OperationType.CANCELLATION:
        notification_type = NotificationType.CANCELLATION
        title = f"Cancellation requested for {booking.booking_reference}"
    else:
        notification_type = NotificationType.SCHEDULE_CHANGE
        title = f"{operation_type.value.replace('_', ' ').capitalize()} on {booking.booking_reference}"
    priority = (
        NotificationPriority.HIGH
        if operation_type in {OperationType.AIRLINE_CHANGE, OperationType.CANCELLATION}
        else NotificationPriority.NORMAL
    )
    session.add(
        BookingNotification(
            booking_id=booking.id,
            notification_type=notification_type,
            title=title,
            message=reason or title,
            priority=priority,
            extra={"operation_type": operation_type.value},
        )
    )
    await session.commit()
    await session.refresh(operation)
    return operation


def _apply_new_travel_dates(booking: Booking, new_details: dict[str, Any] | None) -> None:
    if not new_details:
        return
    start = new_details.get("travel_start_date")
    end = new_details.get("travel_end_date")
    if start:
        booking.travel_start_date = date.fromisoformat(str(start)[:10])
    if end:
        booking.travel_end_date = date.fromisoformat(str(end)[:10])
    if booking.travel_end_date < booking.travel_start_date:
        raise ValueError("New travel end date must not be before the start date")


async def update_operation(
    session: AsyncSession,
    booking: Booking,
    operation: BookingOperation,
    *,
    operation_status: OperationStatus | None = None,
    supplier_reference: str | None = None,
    notes: str | None = None,
) -> BookingOperation:
    """Advance an operation. Completion stamps ``completed_at``.

    A completed cancellation cancels the booking and books the refund; a
    completed change reschedules it; a failed change restores Confirmed.
    """
    if operation.operation_status in {OperationStatus.COMPLETED, OperationStatus.FAILED}:
        raise ValueError("Operation is already closed")
    if supplier_reference is not None:
        operation.supplier_reference = supplier_reference
    if notes is not None:
        operation.notes = notes
    if operation_status is not None and operation_status != operation.operation_status:
        operation.operation_status = operation_status
        if operation_status is OperationStatus.COMPLETED:
            operation.completed_at = datetime.now(UTC)
            if operation.operation_type is OperationType.CANCELLATION:
                booking.status = BookingStatus.CANCELLED
                if operation.refund_amount > _ZERO:
                    booking.amount_paid = max(
                        booking.amount_paid - operation.refund_amount, _ZERO
                    )
                    booking.payment_status = PaymentStatus.REFUNDED
            else:
                _apply_new_travel_dates(booking, operation.new_details)
                booking.status = BookingStatus.RESCHEDULED
        elif (
            operation_status is OperationStatus.FAILED
            and booking.status == BookingStatus.PENDING_CHANGE
        ):
            booking.status = BookingStatus.CONFIRMED
    await session.commit()
    await session.refresh(operation)
    return operation


async def get_operation(
    session: AsyncSession, booking: Booking, operation_id: uuid.UUID
) -> BookingOperation | None:
    result = await session.execute(
        select(BookingOperation).where(
            BookingOperation.id == operation_id,
            BookingOperation.booking_id == booking.id,
        )
    )
    return result.scalar_one_or_none()


async def list_notifications(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    unread_only: bool = False,
    limit: int = 50,
) -> Sequence[BookingNotification]:
    stmt = (
        select(BookingNotification)
        .join(Booking, BookingNotification.booking_id == Booking.id)
        .where(Booking.account_id == account_id)
    )
    if unread_only:
        stmt = stmt.where(BookingNotification.read_at.is_(None))
    stmt = stmt.order_by(BookingNotification.created_at.desc()).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()


async def unread_notification_count(
    session: AsyncSession, *, account_id: uuid.UUID
) -> int:
    count = await session.scalar(
        select(func.count(BookingNotification.id))
        .join(Booking, BookingNotification.booking_id == Booking.id)
        .where(Booking.account_id == account_id, BookingNotification.read_at.is_(None))
    )
    return int(count or 0)


async def mark_notification_read(
    session: AsyncSession, *, account_id: uuid.UUID, notification_id: uuid.UUID
) -> BookingNotification | None:
    result = await session.execute(
        select(BookingNotification)
        .join(Booking, BookingNotification.booking_id == Booking.id)
        .where(
            BookingNotification.id == notification_id,
            Booking.account_id == account_id,
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        return None
    if notification.read_at is None:
        notification.read_at = datetime.now(UTC)
        await session.commit()
        await session.refresh(notification)
    return notification

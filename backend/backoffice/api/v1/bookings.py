"""Booking management API."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api import deps
from backoffice.models.booking import Booking, BookingStatus
from backoffice.models.user import User
from backoffice.schemas.booking import (
    BookingCreate,
    BookingNotificationRead,
    BookingOperationCreate,
    BookingOperationRead,
    BookingOperationUpdate,
    BookingPaymentCreate,
    BookingRead,
    BookingStatusUpdate,
)
from backoffice.services import audit_service, booking_service

router = APIRouter()


async def _get_booking_or_404(
    session: AsyncSession, current_user: User, booking_id: uuid.UUID
) -> Booking:
    booking = await booking_service.get_booking(
        session, account_id=current_user.account_id, booking_id=booking_id
    )
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    return booking


@router.get("", response_model=list[BookingRead], summary="List bookings")
async def list_bookings(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    status_filter: Annotated[BookingStatus | None, Query(alias="status")] = None,
    skip: int = 0,
    limit: int = 50,
) -> list[BookingRead]:
    bookings = await booking_service.list_bookings(
        session,
        account_id=current_user.account_id,
        status=status_filter,
        skip=skip,
        limit=min(limit, 100),
    )
    return [BookingRead.model_validate(obj) for obj in bookings]


@router.post(
    "",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Convert quote to booking",
)
async def create_booking(
    payload: BookingCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    request: Request,
) -> BookingRead:
    try:
        booking = await booking_service.convert_quote(
            session,
            account_id=current_user.account_id,
            quote_id=payload.quote_id,
            agent_id=current_user.id,
            payment_reference=payload.payment_reference,
        )
    except LookupError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from exc
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Unable to create booking"
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    await audit_service.record_event(
        session,
        actor=current_user,
        subject_id=booking.id,
        event_type=audit_service.BOOKING_CREATED,
        description=f"Quote converted to {booking.booking_reference}",
        payload={"quote_id": str(payload.quote_id), "total": str(booking.total_price)},
        request=request,
    )
    return BookingRead.model_validate(booking)


@router.get(
    "/notifications",
    response_model=list[BookingNotificationRead],
    summary="Booking notifications",
)
async def list_notifications(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    unread_only: bool = False,
    limit: int = 50,
) -> list[BookingNotificationRead]:
    notifications = await booking_service.list_notifications(
        session,
        account_id=current_user.account_id,
        unread_only=unread_only,
        limit=min(limit, 100),
    )
    return [BookingNotificationRead.model_validate(obj) for obj in notifications]


@router.get("/notifications/unread-count", summary="Unread notification count")
async def unread_notification_count(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> dict[str, int]:
    count = await booking_service.unread_notification_count(
        session, account_id=current_user.account_id
    )
    return {"unread": count}


@router.post(
    "/notifications/{notification_id}/read",
    response_model=BookingNotificationRead,
    summary="Mark notification read",
)
async def mark_notification_read(
    notification_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> BookingNotificationRead:
    notification = await booking_service.mark_notification_read(
        session, account_id=current_user.account_id, notification_id=notification_id
    )
    if notification is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
        )
    return BookingNotificationRead.model_validate(notification)


@router.get("/{booking_id}", response_model=BookingRead, summary="Get booking")
async def get_booking(
    booking_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> BookingRead:
    booking = await _get_booking_or_404(session, current_user, booking_id)
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/payments", response_model=BookingRead, summary="Record payment"
)
async def record_payment(
    booking_id: uuid.UUID,
    payload: BookingPaymentCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> BookingRead:
    booking = await _get_booking_or_404(session, current_user, booking_id)
    try:
        updated = await booking_service.record_payment(
            session,
            booking,
            amount=payload.amount,
            payment_reference=payload.payment_reference,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return BookingRead.model_validate(updated)


@router.post(
    "/{booking_id}/status", response_model=BookingRead, summary="Change booking status"
)
async def change_booking_status(
    booking_id: uuid.UUID,
    payload: BookingStatusUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> BookingRead:
    booking = await _get_booking_or_404(session, current_user, booking_id)
    try:
        updated = await booking_service.update_status(session, booking, payload.status)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return BookingRead.model_validate(updated)


@router.get(
    "/{booking_id}/operations",
    response_model=list[BookingOperationRead],
    summary="List booking operations",
)
async def list_operations(
    booking_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[BookingOperationRead]:
    booking = await _get_booking_or_404(session, current_user, booking_id)
    operations = await booking_service.list_operations(session, booking)
    return [BookingOperationRead.model_validate(obj) for obj in operations]


@router.post(
    "/{booking_id}/operations",
    response_model=BookingOperationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Open booking operation",
)
async def create_operation(
    booking_id: uuid.UUID,
    payload: BookingOperationCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> BookingOperationRead:
    booking = await _get_booking_or_404(session, current_user, booking_id)
    try:
        operation = await booking_service.create_operation(
            session, booking, created_by=current_user.id, **payload.model_dump()
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return BookingOperationRead.model_validate(operation)


@router.patch(
    "/{booking_id}/operations/{operation_id}",
    response_model=BookingOperationRead,
    summary="Update booking operation",
)
async def update_operation(
    booking_id: uuid.UUID,
    operation_id: uuid.UUID,
    payload: BookingOperationUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> BookingOperationRead:
    booking = await _get_booking_or_404(session, current_user, booking_id)
    operation = await booking_service.get_operation(session, booking, operation_id)
    if operation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Operation not found"
        )
    try:
        updated = await booking_service.update_operation(
            session, booking, operation, **payload.model_dump(exclude_unset=True)
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return BookingOperationRead.model_validate(updated)

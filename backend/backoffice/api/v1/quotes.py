"""Quote management API."""

from __future__ import annotations

import uuid
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api import deps
from backoffice.api.v1.pricing import build_pricing_read
from backoffice.models.quote import (
    MAX_TRIP_DURATION_DAYS,
    MarkupStrategy,
    Quote,
    QuoteItem,
    QuoteStatus,
)
from backoffice.models.user import User
from backoffice.schemas.comms import EmailSendResultRead
from backoffice.schemas.pricing import QuotePricingRead
from backoffice.schemas.quote import (
    QuoteCreate,
    QuoteItemCreate,
    QuoteItemReorder,
    QuoteItemUpdate,
    QuoteRead,
    QuoteSendRequest,
    QuoteStatusUpdate,
    QuoteSummary,
    QuoteUpdate,
)
from backoffice.services import (
    audit_service,
    email_service,
    quote_service,
    template_service,
)
from backoffice.services.pricing_engine import PricingOptions
from backoffice.services.quote_service import QuoteNotEditableError

router = APIRouter()


def _raise_for(exc: ValueError) -> NoReturn:
    if isinstance(exc, QuoteNotEditableError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


async def _get_quote_or_404(
    session: AsyncSession, current_user: User, quote_id: uuid.UUID
) -> Quote:
    quote = await quote_service.get_quote(
        session, account_id=current_user.account_id, quote_id=quote_id
    )
    if quote is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quote not found")
    return quote


def _get_item_or_404(quote: Quote, item_id: uuid.UUID) -> QuoteItem:
    item = quote_service.get_item(quote, item_id)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Quote item not found"
        )
    return item


@router.get("", response_model=list[QuoteSummary], summary="List quotes")
async def list_quotes(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    status_filter: Annotated[QuoteStatus | None, Query(alias="status")] = None,
    customer_id: uuid.UUID | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[QuoteSummary]:
    quotes = await quote_service.list_quotes(
        session,
        account_id=current_user.account_id,
        status=status_filter,
        customer_id=customer_id,
        skip=skip,
        limit=min(limit, 100),
    )
    return [QuoteSummary.model_validate(obj) for obj in quotes]


@router.post(
    "",
    response_model=QuoteRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create quote",
)
async def create_quote(
    payload: QuoteCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> QuoteRead:
    data = payload.model_dump(exclude={"items"})
    items = [item.model_dump() for item in payload.items]
    try:
        quote = await quote_service.create_quote(
            session,
            account_id=current_user.account_id,
            agent_id=current_user.id,
            items=items,
            **data,
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Unable to create quote"
        ) from exc
    except ValueError as exc:
        _raise_for(exc)
    return QuoteRead.model_validate(quote)


@router.get("/{quote_id}", response_model=QuoteRead, summary="Get quote")
async def get_quote(
    quote_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> QuoteRead:
    quote = await _get_quote_or_404(session, current_user, quote_id)
    return QuoteRead.model_validate(quote)


@router.patch("/{quote_id}", response_model=QuoteRead, summary="Update quote")
async def update_quote(
    quote_id: uuid.UUID,
    payload: QuoteUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> QuoteRead:
    quote = await _get_quote_or_404(session, current_user, quote_id)
    try:
        updated = await quote_service.update_quote(
            session, quote, **payload.model_dump(exclude_unset=True)
        )
    except ValueError as exc:
        _raise_for(exc)
    return QuoteRead.model_validate(updated)


@router.post("/{quote_id}/status", response_model=QuoteRead, summary="Change quote status")
async def change_quote_status(
    quote_id: uuid.UUID,
    payload: QuoteStatusUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    request: Request,
) -> QuoteRead:
    quote = await _get_quote_or_404(session, current_user, quote_id)
    previous = quote.status
    try:
        updated = await quote_service.change_status(session, quote, payload.status)
    except ValueError as exc:
        _raise_for(exc)
    if updated.status != previous:
        await audit_service.record_event(
            session,
            actor=current_user,
            subject_id=updated.id,
            event_type=audit_service.QUOTE_STATUS_CHANGED,
            description=f"{previous.value} -> {updated.status.value}",
            payload={"quote_reference": updated.quote_reference},
            request=request,
        )
    return QuoteRead.model_validate(updated)


@router.post(
    "/{quote_id}/items",
    response_model=QuoteRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add quote item",
)
async def add_quote_item(
    quote_id: uuid.UUID,
    payload: QuoteItemCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> QuoteRead:
    quote = await _get_quote_or_404(session, current_user, quote_id)
    try:
        updated = await quote_service.add_item(session, quote, **payload.model_dump())
    except ValueError as exc:
        _raise_for(exc)
    return QuoteRead.model_validate(updated)


@router.post("/{quote_id}/items/reorder", response_model=QuoteRead, summary="Reorder items")
async def reorder_quote_items(
    quote_id: uuid.UUID,
    payload: QuoteItemReorder,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> QuoteRead:
    quote = await _get_quote_or_404(session, current_user, quote_id)
    try:
        updated = await quote_service.reorder_items(session, quote, payload.item_ids)
    except ValueError as exc:
        _raise_for(exc)
    return QuoteRead.model_validate(updated)


@router.patch(
    "/{quote_id}/items/{item_id}", response_model=QuoteRead, summary="Update quote item"
)
async def update_quote_item(
    quote_id: uuid.UUID,
    item_id: uuid.UUID,
    payload: QuoteItemUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> QuoteRead:
    quote = await _get_quote_or_404(session, current_user, quote_id)
    item = _get_item_or_404(quote, item_id)
    try:
        updated = await quote_service.update_item(
            session, quote, item, **payload.model_dump(exclude_unset=True)
        )
    except ValueError as exc:
        _raise_for(exc)
    return QuoteRead.model_validate(updated)


@router.delete(
    "/{quote_id}/items/{item_id}", response_model=QuoteRead, summary="Remove quote item"
)
async def delete_quote_item(
    quote_id: uuid.UUID,
    item_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> QuoteRead:
    quote = await _get_quote_or_404(session, current_user, quote_id)
    item = _get_item_or_404(quote, item_id)
    try:
        updated = await quote_service.delete_item(session, quote, item)
    except ValueError as exc:
        _raise_for(exc)
    return QuoteRead.model_validate(updated)


@router.get("/{quote_id}/pricing", response_model=QuotePricingRead, summary="Quote pricing")
async def get_quote_pricing(
    quote_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    trip_duration_days: Annotated[
        int | None, Query(ge=1, le=MAX_TRIP_DURATION_DAYS)
    ] = None,
    markup_strategy: MarkupStrategy | None = None,
    round_to_cents: bool = False,
    include_discount: bool = True,
) -> QuotePricingRead:
    """Full engine breakdown. Day buckets default to the trip dates, capped at a year."""
    quote = await _get_quote_or_404(session, current_user, quote_id)
    options = PricingOptions(
        markup_strategy=markup_strategy,
        round_to_cents=round_to_cents,
        include_discount=include_discount,
    )
    return build_pricing_read(
        quote, options, trip_duration_days or quote.trip_duration_days
    )


@router.post("/{quote_id}/send", response_model=EmailSendResultRead, summary="Email quote")
async def send_quote(
    quote_id: uuid.UUID,
    payload: QuoteSendRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> EmailSendResultRead:
    quote = await _get_quote_or_404(session, current_user, quote_id)
    recipients = payload.to or ([quote.customer.email] if quote.customer.email else [])
    if not recipients:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Customer has no email address",
        )
    template = await template_service.get_template_by_key(
        session, account_id=current_user.account_id, template_key=payload.template_key
    )
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Email template not found"
        )
    try:
        if payload.mark_as_sent and quote.status == QuoteStatus.DRAFT:
            quote = await quote_service.change_status(session, quote, QuoteStatus.SENT)
        result = await email_service.send_template(
            session,
            account_id=current_user.account_id,
            template_key=payload.template_key,
            to=recipients,
            context=email_service.build_quote_context(quote, agent=current_user),
            customer_id=quote.customer_id,
            quote_id=quote.id,
        )
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        _raise_for(exc)
    return EmailSendResultRead(
        success=result.success,
        message_id=result.message_id,
        error=result.error,
        outbox_id=result.outbox_id,
    )

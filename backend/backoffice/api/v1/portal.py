"""Client portal endpoints. No staff authentication."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api import deps
from backoffice.core.config import get_settings
from backoffice.schemas.portal import PortalQuoteItemRead, PortalQuoteRead
from backoffice.services import pricing_engine, quote_service

router = APIRouter()


@router.get(
    "/quotes/{quote_reference}",
    response_model=PortalQuoteRead,
    summary="Client view of a shared quote",
)
async def get_portal_quote(
    quote_reference: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> PortalQuoteRead:
    """Prices as the client sees them: the same engine totals, no costs."""
    quote = await quote_service.get_quote_by_reference(
        session, quote_reference=quote_reference
    )
    if quote is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quote not found")
    currency = get_settings().default_currency
    pricing = pricing_engine.price_quote(quote)
    items = [
        PortalQuoteItemRead(
            item_type=item.item_type,
            item_name=item.item_name,
            quantity=line.quantity,
            per_night=line.per_night,
            unit_price=pricing_engine.round_money(line.unit_price),
            total=pricing_engine.round_money(line.total),
            details=item.details or {},
        )
        for item, line in zip(quote.quote_items, pricing.lines)
    ]
    return PortalQuoteRead(
        quote_reference=quote.quote_reference,
        status=quote.status,
        customer_name=quote.customer.full_name,
        trip_start_date=quote.trip_start_date,
        trip_end_date=quote.trip_end_date,
        expiry_date=quote.expiry_date,
        items=items,
        subtotal=pricing_engine.round_money(pricing.subtotal),
        discount=quote.discount,
        discount_amount=pricing_engine.round_money(pricing.discount_amount),
        total=pricing_engine.round_money(pricing.total),
        currency=currency,
        formatted_total=pricing_engine.format_price(pricing.total, currency),
    )

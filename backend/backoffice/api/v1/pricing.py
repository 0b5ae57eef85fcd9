"""Pricing preview API."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from backoffice.api import deps
from backoffice.core.config import get_settings
from backoffice.models.user import User
from backoffice.schemas.pricing import (
    DayBreakdownRead,
    DayTotalRead,
    PricingLineRead,
    PricingPreviewRequest,
    QuotePricingRead,
)
from backoffice.services import pricing_engine
from backoffice.services.pricing_engine import PricingOptions

router = APIRouter()


def build_pricing_read(
    quote: Any,
    options: PricingOptions | None = None,
    trip_duration_days: int | None = None,
) -> QuotePricingRead:
    """Serialize the engine breakdown for ``quote``."""
    pricing = pricing_engine.price_quote(quote, options)
    day_breakdown = None
    if trip_duration_days:
        breakdown = pricing_engine.calculate_day_breakdown(
            quote, trip_duration_days, options
        )
        day_breakdown = DayBreakdownRead(
            trip_duration_days=breakdown.trip_duration_days,
            days=[
                DayTotalRead(day_index=index, total=total)
                for index, total in sorted(breakdown.days.items())
            ],
            unassigned_item_ids=breakdown.unassigned_item_ids,
            unassigned_total=breakdown.unassigned_total,
        )
    return QuotePricingRead(
        strategy=pricing.strategy,
        lines=[
            PricingLineRead(
                item_id=line.item_id,
                item_type=line.item_type,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total=line.total,
                per_night=line.per_night,
                effective_markup=line.effective_markup.amount,
                effective_markup_type=line.effective_markup.markup_type,
            )
            for line in pricing.lines
        ],
        subtotal=pricing.subtotal,
        discount_amount=pricing.discount_amount,
        total=pricing.total,
        average_markup=pricing.average_markup,
        formatted_total=pricing_engine.format_price(
            pricing.total, get_settings().default_currency
        ),
        day_breakdown=day_breakdown,
    )


@router.post("/preview", response_model=QuotePricingRead, summary="Price a draft payload")
async def preview_pricing(
    payload: PricingPreviewRequest,
    _: Annotated[User, Depends(deps.get_current_active_user)],
) -> QuotePricingRead:
    """Price an unsaved quote with the same engine used for stored quotes."""
    options = PricingOptions(
        markup_strategy=payload.markup_strategy,
        round_to_cents=payload.round_to_cents,
        include_discount=payload.include_discount,
    )
    quote = payload.model_dump(include={"markup", "discount", "quote_items"})
    return build_pricing_read(quote, options, payload.trip_duration_days)

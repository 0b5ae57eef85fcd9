"""Unified quote pricing engine.

Every surface that shows a price (quote detail, client portal, booking
conversion, outgoing emails) goes through these functions; nothing else in
the code base performs markup or discount arithmetic.

The engine is pure: it reads quote and item records (ORM objects, pydantic
models or plain mappings), never mutates them, performs no I/O and never
raises on incomplete data. Missing numbers count as zero, a missing markup
type as ``percentage`` and a missing quantity as one.

Resolution order for the markup strategy:

1. ``PricingOptions.markup_strategy`` when given
2. ``quote.markup_strategy`` when stored
3. inferred from the items by :func:`determine_markup_strategy`

Amounts are ``Decimal`` at full precision. Rounding to cents happens only on
the value handed back to the caller when ``round_to_cents`` is set.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from backoffice.models.quote import (
    MAX_TRIP_DURATION_DAYS,
    ItemType,
    MarkupStrategy,
    MarkupType,
)

MONEY_PLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_TOLERANCE = Decimal("0.01")

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "CAD": "CA$", "AUD": "A$"}


@dataclass(slots=True, frozen=True)
class PricingOptions:
    """Per-call overrides. Every field is optional."""

    markup_strategy: MarkupStrategy | None = None
    round_to_cents: bool = False
    include_discount: bool = True


DEFAULT_OPTIONS = PricingOptions()


@dataclass(slots=True, frozen=True)
class EffectiveMarkup:
    """Markup actually applied to one item after strategy resolution."""

    amount: Decimal
    markup_type: MarkupType
    source: str  # "item" or "quote"


@dataclass(slots=True)
class LinePricing:
    """Priced view of a single quote item."""

    item_id: Any
    item_type: ItemType | None
    cost: Decimal
    quantity: int
    effective_markup: EffectiveMarkup
    unit_price: Decimal
    total: Decimal

    @property
    def per_night(self) -> bool:
        return self.item_type is ItemType.HOTEL

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": None if self.item_id is None else str(self.item_id),
            "item_type": self.item_type.value if self.item_type else None,
            "quantity": self.quantity,
            "unit_price": _to_str(self.unit_price),
            "total": _to_str(self.total),
            "per_night": self.per_night,
            "effective_markup": _to_str(self.effective_markup.amount),
            "effective_markup_type": self.effective_markup.markup_type.value,
        }


@dataclass(slots=True)
class DayBreakdown:
    """Per-day subtotals plus the items no day bucket could hold."""

    trip_duration_days: int
    days: dict[int, Decimal]
    unassigned_item_ids: list[Any] = field(default_factory=list)
    unassigned_total: Decimal = ZERO

    @property
    def assigned_total(self) -> Decimal:
        return sum(self.days.values(), ZERO)


@dataclass(slots=True)
class QuotePricing:
    """Complete pricing breakdown for a quote."""

    strategy: MarkupStrategy
    lines: list[LinePricing]
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    average_markup: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": _to_str(self.subtotal),
            "discount_amount": _to_str(self.discount_amount),
            "total": _to_str(self.total),
            "average_markup": _to_str(self.average_markup),
        }


@dataclass(slots=True, frozen=True)
class PricingConsistency:
    is_valid: bool
    difference: Decimal
    message: str


# -- field access -----------------------------------------------------------


def _field(record: Any, name: str, default: Any = None) -> Any:
    if record is None:
        return default
    if isinstance(record, Mapping):
        value = record.get(name, default)
    else:
        value = getattr(record, name, default)
    return default if value is None else value


def _to_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    return result if result.is_finite() else ZERO


def _enum_member(enum_cls: Any, raw: Any) -> Any:
    if raw is None or isinstance(raw, enum_cls):
        return raw
    text = str(getattr(raw, "value", raw)).strip()
    for member in enum_cls:
        if member.value.lower() == text.lower():
            return member
    return None


def _items(quote: Any) -> list[Any]:
    return list(_field(quote, "quote_items", None) or [])


def _quantity(item: Any) -> int:
    quantity = _to_decimal(_field(item, "quantity"))
    if quantity < 1:
        return 1
    return int(quantity)


def _markup_type(item: Any) -> MarkupType:
    return _enum_member(MarkupType, _field(item, "markup_type")) or MarkupType.PERCENTAGE


def _item_type(item: Any) -> ItemType | None:
    return _enum_member(ItemType, _field(item, "item_type"))


def _details_value(item: Any, key: str) -> Any:
    details = _field(item, "details", None)
    return _field(details, key, None)


def _day_index(item: Any) -> int | None:
    raw = _details_value(item, "day_index")
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _finish(value: Decimal, options: PricingOptions) -> Decimal:
    return round_money(value) if options.round_to_cents else value


def _to_str(value: Decimal) -> str:
    return f"{round_money(value):.2f}"


# -- strategy resolution ----------------------------------------------------


def coerce_strategy(raw: Any) -> MarkupStrategy | None:
    """Return a strategy for ``raw`` or ``None`` when unset or unrecognised."""
    return _enum_member(MarkupStrategy, raw)


def determine_markup_strategy(quote: Any) -> MarkupStrategy:
    """Infer a strategy from which items carry their own markup.

    No item with markup -> global, every item -> individual, some -> mixed.
    """
    flags = [_to_decimal(_field(item, "markup")) != ZERO for item in _items(quote)]
    if not any(flags):
        return MarkupStrategy.GLOBAL
    if all(flags):
        return MarkupStrategy.INDIVIDUAL
    return MarkupStrategy.MIXED


def resolve_markup_strategy(
    quote: Any, options: PricingOptions | None = None
) -> MarkupStrategy:
    options = options or DEFAULT_OPTIONS
    override = coerce_strategy(options.markup_strategy)
    if override is not None:
        return override
    stored = coerce_strategy(_field(quote, "markup_strategy"))
    if stored is not None:
        return stored
    return determine_markup_strategy(quote)


def _strategy_for(
    quote: Any, strategy: MarkupStrategy | str | None, options: PricingOptions
) -> MarkupStrategy:
    explicit = coerce_strategy(strategy)
    if explicit is not None:
        return explicit
    return resolve_markup_strategy(quote, options)


def get_effective_markup(
    item: Any, quote: Any, strategy: MarkupStrategy | str
) -> EffectiveMarkup:
    """Select the markup for ``item`` under ``strategy``.

    Quote-level markup is always a percentage. The item's own markup type
    applies only when the item's markup is the one selected.
    """
    resolved = coerce_strategy(strategy) or MarkupStrategy.GLOBAL
    item_markup = _to_decimal(_field(item, "markup"))
    if resolved is MarkupStrategy.INDIVIDUAL or (
        resolved is MarkupStrategy.MIXED and item_markup != ZERO
    ):
        return EffectiveMarkup(item_markup, _markup_type(item), "item")
    return EffectiveMarkup(
        _to_decimal(_field(quote, "markup")), MarkupType.PERCENTAGE, "quote"
    )


def apply_markup(cost: Decimal, markup: EffectiveMarkup) -> Decimal:
    """Return the marked-up unit price for one unit of ``cost``."""
    if markup.markup_type is MarkupType.FIXED:
        return cost + markup.amount
    return cost + cost * markup.amount / HUNDRED


# -- item pricing -----------------------------------------------------------


def _unit_price(item: Any, quote: Any, strategy: MarkupStrategy) -> Decimal:
    cost = _to_decimal(_field(item, "cost"))
    return apply_markup(cost, get_effective_markup(item, quote, strategy))


def _item_total(item: Any, quote: Any, strategy: MarkupStrategy) -> Decimal:
    return _unit_price(item, quote, strategy) * _quantity(item)


def calculate_item_price(
    item: Any,
    quote: Any,
    strategy: MarkupStrategy | str | None = None,
    options: PricingOptions | None = None,
) -> Decimal:
    """Unit price of ``item``. For hotels this is the price per night."""
    options = options or DEFAULT_OPTIONS
    resolved = _strategy_for(quote, strategy, options)
    return _finish(_unit_price(item, quote, resolved), options)


def calculate_item_total(
    item: Any,
    quote: Any,
    strategy: MarkupStrategy | str | None = None,
    options: PricingOptions | None = None,
) -> Decimal:
    """Extended total: unit price times quantity (nights, for hotels)."""
    options = options or DEFAULT_OPTIONS
    resolved = _strategy_for(quote, strategy, options)
    return _finish(_item_total(item, quote, resolved), options)


def hotel_nights(item: Any) -> int:
    """Number of nights a hotel item covers.

    ``quantity`` wins when present. Otherwise ``details`` is consulted for
    ``nights``, ``number_of_nights`` or a check-in/check-out date pair.
    """
    if _field(item, "quantity") is not None:
        return _quantity(item)
    for key in ("nights", "number_of_nights", "numberOfNights"):
        nights = _to_decimal(_details_value(item, key))
        if nights >= 1:
            return int(nights)
    check_in = _parse_date(
        _details_value(item, "check_in_date") or _details_value(item, "checkInDate")
    )
    check_out = _parse_date(
        _details_value(item, "check_out_date") or _details_value(item, "checkOutDate")
    )
    if check_in and check_out and check_out > check_in:
        return (check_out - check_in).days
    return 1


def _parse_date(raw: Any) -> datetime.date | None:
    if isinstance(raw, datetime.datetime):
        return raw.date()
    if isinstance(raw, datetime.date):
        return raw
    if isinstance(raw, str):
        try:
            return datetime.date.fromisoformat(raw[:10])
        except ValueError:
            return None
    return None


# -- aggregation ------------------------------------------------------------


def calculate_day_total(
    items: Iterable[Any],
    quote: Any,
    strategy: MarkupStrategy | str | None = None,
    options: PricingOptions | None = None,
) -> Decimal:
    """Sum of item totals for the items of one day or group.

    The strategy is resolved against the whole quote, not the subset, so a
    day total always agrees with the same items inside the quote total.
    """
    options = options or DEFAULT_OPTIONS
    resolved = _strategy_for(quote, strategy, options)
    total = sum((_item_total(item, quote, resolved) for item in items), ZERO)
    return _finish(total, options)


def calculate_day_breakdown(
    quote: Any,
    trip_duration_days: int,
    options: PricingOptions | None = None,
) -> DayBreakdown:
    """Bucket item totals by ``details.day_index`` within ``[0, duration)``.

    ``duration`` is capped at ``MAX_TRIP_DURATION_DAYS``.

    Items without a day index, or with one outside the range, are reported in
    ``unassigned_*`` so that ``assigned_total + unassigned_total`` equals the
    subtotal.
    """
    options = options or DEFAULT_OPTIONS
    strategy = resolve_markup_strategy(quote, options)
    duration = max(int(trip_duration_days or 0), 0)
    duration = min(duration, MAX_TRIP_DURATION_DAYS)
    days: dict[int, Decimal] = {index: ZERO for index in range(duration)}
    unassigned_ids: list[Any] = []
    unassigned_total = ZERO
    for item in _items(quote):
        total = _item_total(item, quote, strategy)
        day_index = _day_index(item)
        if day_index is not None and 0 <= day_index < duration:
            days[day_index] += total
        else:
            unassigned_ids.append(_field(item, "id"))
            unassigned_total += total
    return DayBreakdown(
        trip_duration_days=duration,
        days={index: _finish(amount, options) for index, amount in days.items()},
        unassigned_item_ids=unassigned_ids,
        unassigned_total=_finish(unassigned_total, options),
    )


def _subtotal(quote: Any, strategy: MarkupStrategy) -> Decimal:
    return sum((_item_total(item, quote, strategy) for item in _items(quote)), ZERO)


def _apply_discount(subtotal: Decimal, quote: Any) -> Decimal:
    discount = _to_decimal(_field(quote, "discount"))
    return subtotal * (HUNDRED - discount) / HUNDRED


def calculate_subtotal(quote: Any, options: PricingOptions | None = None) -> Decimal:
    """Marked-up total of every item, before discount."""
    options = options or DEFAULT_OPTIONS
    strategy = resolve_markup_strategy(quote, options)
    return _finish(_subtotal(quote, strategy), options)


def calculate_quote_total(quote: Any, options: PricingOptions | None = None) -> Decimal:
    """Grand total: every item marked up, summed, then discounted once."""
    options = options or DEFAULT_OPTIONS
    strategy = resolve_markup_strategy(quote, options)
    total = _subtotal(quote, strategy)
    if options.include_discount:
        total = _apply_discount(total, quote)
    return _finish(total, options)


def calculate_average_markup(
    quote: Any, options: PricingOptions | None = None
) -> Decimal:
    """Cost-weighted average markup percentage, for labels only.

    Falls back to ``quote.markup`` when no item carries its own markup.
    Never feed this back into a total.
    """
    options = options or DEFAULT_OPTIONS
    items = _items(quote)
    if not any(_to_decimal(_field(item, "markup")) != ZERO for item in items):
        return _finish(_to_decimal(_field(quote, "markup")), options)
    strategy = resolve_markup_strategy(quote, options)
    base = sum(
        (_to_decimal(_field(item, "cost")) * _quantity(item) for item in items), ZERO
    )
    if base == ZERO:
        return ZERO
    marked_up = _subtotal(quote, strategy)
    return _finish((marked_up - base) / base * HUNDRED, options)


def price_quote(quote: Any, options: PricingOptions | None = None) -> QuotePricing:
    """Full breakdown used by every API and document that shows a quote."""
    options = options or DEFAULT_OPTIONS
    strategy = resolve_markup_strategy(quote, options)
    lines: list[LinePricing] = []
    for item in _items(quote):
        markup = get_effective_markup(item, quote, strategy)
        unit_price = apply_markup(_to_decimal(_field(item, "cost")), markup)
        quantity = _quantity(item)
        lines.append(
            LinePricing(
                item_id=_field(item, "id"),
                item_type=_item_type(item),
                cost=_to_decimal(_field(item, "cost")),
                quantity=quantity,
                effective_markup=markup,
                unit_price=_finish(unit_price, options),
                total=_finish(unit_price * quantity, options),
            )
        )
    subtotal = _subtotal(quote, strategy)
    total = _apply_discount(subtotal, quote) if options.include_discount else subtotal
    return QuotePricing(
        strategy=strategy,
        lines=lines,
        subtotal=_finish(subtotal, options),
        discount_amount=_finish(subtotal - total, options),
        total=_finish(total, options),
        average_markup=calculate_average_markup(quote, options),
    )


def validate_pricing_consistency(
    quote: Any,
    calculated_total: Decimal | float | str,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> PricingConsistency:
    """Compare an externally computed total against the engine's."""
    expected = calculate_quote_total(quote)
    difference = abs(_to_decimal(calculated_total) - expected)
    if difference <= tolerance:
        return PricingConsistency(True, difference, "Pricing is consistent")
    return PricingConsistency(
        False,
        difference,
        f"Pricing inconsistency detected: {_to_str(difference)} difference",
    )


# -- display helpers --------------------------------------------------------


def round_money(value: Decimal | float | str) -> Decimal:
    return _to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def format_price(value: Decimal | float | str, currency: str = "USD") -> str:
    amount = round_money(value)
    code = currency.upper()
    symbol = _CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


__all__ = [
    "DEFAULT_OPTIONS",
    "DayBreakdown",
    "EffectiveMarkup",
    "LinePricing",
    "PricingConsistency",
    "PricingOptions",
    "QuotePricing",
    "apply_markup",
    "calculate_average_markup",
    "calculate_day_breakdown",
    "calculate_day_total",
    "calculate_item_price",
    "calculate_item_total",
    "calculate_quote_total",
    "calculate_subtotal",
    "coerce_strategy",
    "determine_markup_strategy",
    "format_price",
    "get_effective_markup",
    "hotel_nights",
    "price_quote",
    "resolve_markup_strategy",
    "round_money",
    "validate_pricing_consistency",
]

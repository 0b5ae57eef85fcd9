from __future__ import annotations

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from backoffice.models import ItemType, MarkupStrategy, MarkupType
from backoffice.services import pricing_engine
from backoffice.services.pricing_engine import PricingOptions


def _item(**fields):
    base = {
        "id": uuid.uuid4(),
        "item_type": ItemType.TOUR,
        "cost": Decimal("100"),
        "markup": Decimal("0"),
        "markup_type": MarkupType.PERCENTAGE,
        "quantity": 1,
        "details": {},
    }
    base.update(fields)
    return SimpleNamespace(**base)


def _quote(items, **fields):
    base = {
        "markup": Decimal("0"),
        "discount": Decimal("0"),
        "markup_strategy": None,
        "quote_items": items,
    }
    base.update(fields)
    return SimpleNamespace(**base)


@pytest.mark.parametrize(
    ("markups", "expected"),
    [
        ((0, 0), MarkupStrategy.GLOBAL),
        ((10, 5), MarkupStrategy.INDIVIDUAL),
        ((10, 0), MarkupStrategy.MIXED),
    ],
)
def test_strategy_inferred_from_item_markups(markups, expected) -> None:
    quote = _quote([_item(markup=Decimal(m)) for m in markups])
    assert pricing_engine.determine_markup_strategy(quote) is expected
    assert pricing_engine.resolve_markup_strategy(quote) is expected


def test_empty_quote_infers_global_and_totals_zero() -> None:
    quote = _quote([], markup=Decimal("25"), discount=Decimal("10"))
    assert pricing_engine.determine_markup_strategy(quote) is MarkupStrategy.GLOBAL
    assert pricing_engine.calculate_quote_total(quote) == Decimal("0")


def test_stored_strategy_beats_inference_and_options_beat_stored() -> None:
    items = [_item(markup=Decimal("10")), _item(markup=Decimal("0"))]
    quote = _quote(items, markup=Decimal("5"), markup_strategy="global")
    assert pricing_engine.resolve_markup_strategy(quote) is MarkupStrategy.GLOBAL
    override = PricingOptions(markup_strategy=MarkupStrategy.INDIVIDUAL)
    assert pricing_engine.resolve_markup_strategy(quote, override) is MarkupStrategy.INDIVIDUAL


def test_unknown_stored_strategy_falls_back_to_inference() -> None:
    quote = _quote([_item(markup=Decimal("12"))], markup_strategy="bogus")
    assert pricing_engine.resolve_markup_strategy(quote) is MarkupStrategy.INDIVIDUAL


def test_global_strategy_ignores_item_markup() -> None:
    item = _item(markup=Decimal("50"))
    quote = _quote([item], markup=Decimal("20"), markup_strategy=MarkupStrategy.GLOBAL)
    assert pricing_engine.calculate_item_price(item, quote) == Decimal("120")


def test_individual_strategy_ignores_quote_markup() -> None:
    item = _item(markup=Decimal("15"))
    quote = _quote([item], markup=Decimal("999"), markup_strategy="individual")
    assert pricing_engine.calculate_item_price(item, quote) == Decimal("115")


def test_mixed_strategy_falls_back_per_item() -> None:
    first = _item(cost=Decimal("100"), markup=Decimal("0"))
    second = _item(cost=Decimal("200"), markup=Decimal("10"))
    quote = _quote([first, second], markup=Decimal("5"), markup_strategy="mixed")
    assert pricing_engine.calculate_item_price(first, quote) == Decimal("105")
    assert pricing_engine.calculate_item_price(second, quote) == Decimal("220")


@pytest.mark.parametrize(
    "strategy", [MarkupStrategy.INDIVIDUAL, MarkupStrategy.MIXED]
)
def test_fixed_markup_adds_flat_amount(strategy) -> None:
    item = _item(cost=Decimal("50"), markup=Decimal("8"), markup_type=MarkupType.FIXED)
    quote = _quote([item], markup=Decimal("30"))
    assert pricing_engine.calculate_item_price(item, quote, strategy) == Decimal("58")


def test_quote_markup_is_always_a_percentage() -> None:
    item = _item(cost=Decimal("50"), markup=Decimal("0"), markup_type=MarkupType.FIXED)
    quote = _quote([item], markup=Decimal("10"), markup_strategy="global")
    effective = pricing_engine.get_effective_markup(item, quote, "global")
    assert effective.markup_type is MarkupType.PERCENTAGE
    assert effective.source == "quote"
    assert pricing_engine.calculate_item_price(item, quote) == Decimal("55")


def test_hotel_unit_price_is_per_night() -> None:
    hotel = _item(
        item_type=ItemType.HOTEL,
        cost=Decimal("100"),
        markup=Decimal("10"),
        quantity=3,
    )
    quote = _quote([hotel], markup_strategy="individual")
    assert pricing_engine.calculate_item_price(hotel, quote) == Decimal("110")
    assert pricing_engine.calculate_item_total(hotel, quote) == Decimal("330")
    line = pricing_engine.price_quote(quote).lines[0]
    assert line.per_night is True
    assert line.quantity == 3


def test_hotel_nights_from_details() -> None:
    assert pricing_engine.hotel_nights({"details": {"nights": 4}}) == 4
    assert (
        pricing_engine.hotel_nights(
            {"details": {"check_in_date": "2026-03-01", "check_out_date": "2026-03-05"}}
        )
        == 4
    )
    assert pricing_engine.hotel_nights({"quantity": 2, "details": {"nights": 7}}) == 2
    assert pricing_engine.hotel_nights({"details": {}}) == 1


def test_discount_applied_once_to_summed_total() -> None:
    items = [
        _item(cost=Decimal("100"), quantity=1),
        _item(cost=Decimal("50"), quantity=2),
    ]
    quote = _quote(
        items, markup=Decimal("10"), discount=Decimal("5"), markup_strategy="global"
    )
    assert pricing_engine.calculate_subtotal(quote) == Decimal("220")
    assert pricing_engine.calculate_quote_total(quote) == Decimal("209")
    per_item_sum = sum(
        pricing_engine.calculate_item_total(item, quote) for item in items
    )
    assert pricing_engine.calculate_quote_total(quote) == per_item_sum * Decimal("0.95")


def test_end_to_end_total_after_discount() -> None:
    items = [
        _item(cost=Decimal("100"), quantity=1, markup=Decimal("40")),
        _item(cost=Decimal("100"), quantity=2, markup=Decimal("3")),
    ]
    quote = _quote(
        items, markup=Decimal("10"), discount=Decimal("5"), markup_strategy="global"
    )
    pricing = pricing_engine.price_quote(quote)
    assert pricing.subtotal == Decimal("330")
    assert pricing.discount_amount == Decimal("16.5")
    assert pricing.total == Decimal("313.5")
    assert pricing_engine.format_price(pricing.total) == "$313.50"


@pytest.mark.parametrize(
    "strategy",
    [MarkupStrategy.GLOBAL, MarkupStrategy.INDIVIDUAL, MarkupStrategy.MIXED],
)
def test_total_matches_sum_of_item_totals(strategy) -> None:
    items = [
        _item(cost=Decimal("33.33"), markup=Decimal("12.5"), quantity=3),
        _item(cost=Decimal("19.99"), markup=Decimal("0"), quantity=1),
        _item(
            item_type=ItemType.HOTEL,
            cost=Decimal("89.10"),
            markup=Decimal("7"),
            markup_type=MarkupType.FIXED,
            quantity=2,
        ),
    ]
    quote = _quote(
        items, markup=Decimal("17"), discount=Decimal("7.5"), markup_strategy=strategy
    )
    summed = sum(
        (pricing_engine.calculate_item_total(item, quote) for item in items),
        Decimal("0"),
    )
    expected = summed * (Decimal("100") - Decimal("7.5")) / Decimal("100")
    assert pricing_engine.calculate_quote_total(quote) == expected
    assert pricing_engine.price_quote(quote).total == expected


def test_total_is_idempotent_and_does_not_mutate() -> None:
    item = _item(cost=Decimal("10.10"), markup=Decimal("3.3"))
    quote = _quote([item], discount=Decimal("2"))
    first = pricing_engine.calculate_quote_total(quote)
    second = pricing_engine.calculate_quote_total(quote)
    assert first == second
    assert quote.markup_strategy is None
    assert item.markup == Decimal("3.3")


def test_missing_fields_default_gracefully() -> None:
    quote = {
        "quote_items": [
            {"cost": "100", "markup": None, "markup_type": None, "quantity": None},
            {"cost": None, "markup": "5"},
            {"cost": "not-a-number"},
        ],
        "markup": None,
        "discount": None,
    }
    assert pricing_engine.calculate_quote_total(quote) == Decimal("100")


def test_full_precision_unless_rounding_requested() -> None:
    item = _item(cost=Decimal("10.01"), markup=Decimal("33.3"))
    quote = _quote([item], markup_strategy="individual")
    exact = pricing_engine.calculate_quote_total(quote)
    assert exact == Decimal("13.34333")
    rounded = pricing_engine.calculate_quote_total(
        quote, PricingOptions(round_to_cents=True)
    )
    assert rounded == Decimal("13.34")


def test_include_discount_false_returns_subtotal() -> None:
    quote = _quote([_item()], markup=Decimal("10"), discount=Decimal("50"))
    options = PricingOptions(include_discount=False)
    assert pricing_engine.calculate_quote_total(quote, options) == Decimal("110")
    pricing = pricing_engine.price_quote(quote, options)
    assert pricing.discount_amount == Decimal("0")


def test_day_breakdown_reports_unassigned_items() -> None:
    day_one = _item(cost=Decimal("100"), details={"day_index": 0})
    day_two = _item(cost=Decimal("50"), details={"day_index": 1})
    outside = _item(cost=Decimal("30"), details={"day_index": 7})
    floating = _item(cost=Decimal("20"))
    quote = _quote(
        [day_one, day_two, outside, floating],
        markup=Decimal("10"),
        discount=Decimal("10"),
    )
    breakdown = pricing_engine.calculate_day_breakdown(quote, 3)
    assert breakdown.days == {0: Decimal("110"), 1: Decimal("55"), 2: Decimal("0")}
    assert breakdown.unassigned_item_ids == [outside.id, floating.id]
    assert breakdown.unassigned_total == Decimal("55")
    assert breakdown.assigned_total + breakdown.unassigned_total == (
        pricing_engine.calculate_subtotal(quote)
    )


def test_day_breakdown_is_capped_at_one_year() -> None:
    late = _item(cost=Decimal("40"), details={"day_index": 400})
    breakdown = pricing_engine.calculate_day_breakdown(_quote([late]), 10_000)
    assert breakdown.trip_duration_days == pricing_engine.MAX_TRIP_DURATION_DAYS
    assert len(breakdown.days) == 365
    assert breakdown.unassigned_item_ids == [late.id]
    assert breakdown.unassigned_total == Decimal("40")


def test_day_total_uses_strategy_of_whole_quote() -> None:
    with_markup = _item(cost=Decimal("100"), markup=Decimal("10"))
    without = _item(cost=Decimal("100"), markup=Decimal("0"))
    quote = _quote([with_markup, without], markup=Decimal("20"))
    # the subset alone would infer global and price the first item at 120
    assert pricing_engine.calculate_day_total([with_markup], quote) == Decimal("110")
    assert pricing_engine.calculate_day_total([without], quote) == Decimal("120")


def test_average_markup_is_cost_weighted() -> None:
    items = [
        _item(cost=Decimal("100"), markup=Decimal("10")),
        _item(cost=Decimal("300"), markup=Decimal("20")),
    ]
    quote = _quote(items)
    assert pricing_engine.calculate_average_markup(quote) == Decimal("17.5")


def test_average_markup_falls_back_to_quote_markup() -> None:
    quote = _quote([_item()], markup=Decimal("12"))
    assert pricing_engine.calculate_average_markup(quote) == Decimal("12")


def test_validate_pricing_consistency() -> None:
    quote = _quote([_item()], markup=Decimal("10"))
    ok = pricing_engine.validate_pricing_consistency(quote, "110.004")
    assert ok.is_valid
    bad = pricing_engine.validate_pricing_consistency(quote, Decimal("111"))
    assert not bad.is_valid
    assert bad.difference == Decimal("1")
    assert "1.00" in bad.message


def test_format_price() -> None:
    assert pricing_engine.format_price(Decimal("1234.5")) == "$1,234.50"
    assert pricing_engine.format_price("0.005", "EUR") == "€0.01"
    assert pricing_engine.format_price(Decimal("-3"), "chf") == "-CHF 3.00"

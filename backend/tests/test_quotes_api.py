"""API tests for quotes, pricing and the client portal."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _authenticate(client: AsyncClient, email: str, password: str) -> str:
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    return response.json()["access_token"]


async def _agent_headers(app_context: dict[str, Any]) -> dict[str, str]:
    token = await _authenticate(
        app_context["client"], app_context["agent_email"], app_context["agent_password"]
    )
    return {"Authorization": f"Bearer {token}"}


def _quote_payload(customer_id: Any, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "customer_id": str(customer_id),
        "markup_strategy": "global",
        "markup": "10",
        "discount": "5",
        "trip_start_date": "2026-05-01",
        "trip_end_date": "2026-05-03",
        "items": [
            {
                "item_type": "Flight",
                "item_name": "Outbound",
                "cost": "100",
                "quantity": 1,
                "details": {"day_index": 0},
            },
            {
                "item_type": "Hotel",
                "item_name": "Old Town Hotel",
                "cost": "100",
                "details": {
                    "day_index": 1,
                    "check_in_date": "2026-05-01",
                    "check_out_date": "2026-05-03",
                },
            },
        ],
    }
    payload.update(overrides)
    return payload


async def test_quote_total_is_identical_on_every_surface(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _agent_headers(app_context)

    create_resp = await client.post(
        "/api/v1/quotes", json=_quote_payload(app_context["customer_id"]), headers=headers
    )
    assert create_resp.status_code == 201, create_resp.text
    quote = create_resp.json()
    assert quote["status"] == "Draft"
    assert quote["quote_reference"].startswith("Q-")
    hotel = quote["quote_items"][1]
    assert hotel["quantity"] == 2
    # (110 + 110 * 2) less 5%
    assert Decimal(quote["total_price"]) == Decimal("313.50")

    pricing_resp = await client.get(f"/api/v1/quotes/{quote['id']}/pricing", headers=headers)
    assert pricing_resp.status_code == 200
    pricing = pricing_resp.json()
    assert pricing["strategy"] == "global"
    assert Decimal(pricing["subtotal"]) == Decimal("330")
    assert Decimal(pricing["total"]) == Decimal("313.5")
    assert pricing["formatted_total"] == "$313.50"
    hotel_line = pricing["lines"][1]
    assert hotel_line["per_night"] is True
    assert Decimal(hotel_line["unit_price"]) == Decimal("110")
    assert Decimal(hotel_line["total"]) == Decimal("220")
    breakdown = pricing["day_breakdown"]
    assert breakdown["trip_duration_days"] == 3
    assert [Decimal(day["total"]) for day in breakdown["days"]] == [
        Decimal("110"),
        Decimal("220"),
        Decimal("0"),
    ]
    assert breakdown["unassigned_item_ids"] == []

    status_resp = await client.post(
        f"/api/v1/quotes/{quote['id']}/status", json={"status": "Published"}, headers=headers
    )
    assert status_resp.status_code == 200

    portal_resp = await client.get(f"/api/v1/portal/quotes/{quote['quote_reference']}")
    assert portal_resp.status_code == 200
    portal = portal_resp.json()
    assert Decimal(portal["total"]) == Decimal("313.50")
    assert portal["formatted_total"] == "$313.50"
    assert portal["customer_name"] == "Jordan Traveller"
    assert "cost" not in portal["items"][0]
    assert Decimal(portal["items"][1]["unit_price"]) == Decimal("110.00")

    booking_resp = await client.post(
        "/api/v1/bookings", json={"quote_id": quote["id"]}, headers=headers
    )
    assert booking_resp.status_code == 201, booking_resp.text
    booking = booking_resp.json()
    assert Decimal(booking["total_price"]) == Decimal("313.50")
    assert Decimal(booking["balance_due"]) == Decimal("313.50")
    assert sum(Decimal(item["total_price"]) for item in booking["items"]) == Decimal("330")

    converted = await client.get(f"/api/v1/quotes/{quote['id']}", headers=headers)
    assert converted.json()["status"] == "Converted"
    missing_portal = await client.get(f"/api/v1/portal/quotes/{quote['quote_reference']}")
    assert missing_portal.status_code == 404


async def test_pricing_preview_strategies(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _agent_headers(app_context)

    mixed = await client.post(
        "/api/v1/pricing/preview",
        json={
            "markup": "5",
            "markup_strategy": "mixed",
            "quote_items": [
                {"item_type": "Tour", "cost": "100", "markup": "0"},
                {"item_type": "Tour", "cost": "200", "markup": "10"},
                {"item_type": "Transfer", "cost": "50", "markup": "8", "markup_type": "fixed"},
            ],
        },
        headers=headers,
    )
    assert mixed.status_code == 200
    lines = mixed.json()["lines"]
    assert [Decimal(line["unit_price"]) for line in lines] == [
        Decimal("105"),
        Decimal("220"),
        Decimal("58"),
    ]
    assert lines[0]["effective_markup_type"] == "percentage"
    assert lines[2]["effective_markup_type"] == "fixed"

    inferred = await client.post(
        "/api/v1/pricing/preview",
        json={
            "markup": "999",
            "discount": "10",
            "round_to_cents": True,
            "quote_items": [
                {"item_type": "Tour", "cost": "10.01", "markup": "33.3"},
            ],
        },
        headers=headers,
    )
    body = inferred.json()
    assert body["strategy"] == "individual"
    assert body["total"] == "12.01"

    unauthenticated = await client.post("/api/v1/pricing/preview", json={})
    assert unauthenticated.status_code == 401


async def test_trip_duration_is_limited_to_one_year(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _agent_headers(app_context)
    items = [{"item_type": "Tour", "cost": "10", "details": {"day_index": 0}}]

    too_long = await client.post(
        "/api/v1/pricing/preview",
        json={"trip_duration_days": 366, "quote_items": items},
        headers=headers,
    )
    assert too_long.status_code == 422

    one_year = await client.post(
        "/api/v1/pricing/preview",
        json={"trip_duration_days": 365, "quote_items": items},
        headers=headers,
    )
    assert one_year.status_code == 200
    assert len(one_year.json()["day_breakdown"]["days"]) == 365

    long_trip = (
        await client.post(
            "/api/v1/quotes",
            json=_quote_payload(
                app_context["customer_id"],
                trip_start_date="2026-01-01",
                trip_end_date="2036-01-01",
            ),
            headers=headers,
        )
    ).json()
    pricing = await client.get(
        f"/api/v1/quotes/{long_trip['id']}/pricing", headers=headers
    )
    assert pricing.status_code == 200
    breakdown = pricing.json()["day_breakdown"]
    assert breakdown["trip_duration_days"] == 365
    assert len(breakdown["days"]) == 365

    query_too_long = await client.get(
        f"/api/v1/quotes/{long_trip['id']}/pricing",
        params={"trip_duration_days": 366},
        headers=headers,
    )
    assert query_too_long.status_code == 422


async def test_pricing_query_overrides(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _agent_headers(app_context)
    payload = _quote_payload(app_context["customer_id"], markup_strategy=None)
    payload["items"][0]["markup"] = "12"
    quote = (await client.post("/api/v1/quotes", json=payload, headers=headers)).json()

    inferred = (
        await client.get(f"/api/v1/quotes/{quote['id']}/pricing", headers=headers)
    ).json()
    assert inferred["strategy"] == "mixed"
    assert Decimal(inferred["lines"][0]["unit_price"]) == Decimal("112")

    forced = (
        await client.get(
            f"/api/v1/quotes/{quote['id']}/pricing",
            params={"markup_strategy": "global", "include_discount": "false"},
            headers=headers,
        )
    ).json()
    assert forced["strategy"] == "global"
    assert Decimal(forced["total"]) == Decimal("330")
    assert Decimal(forced["discount_amount"]) == Decimal("0")


async def test_pricing_locked_once_quote_is_sent(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _agent_headers(app_context)
    quote = (
        await client.post(
            "/api/v1/quotes",
            json=_quote_payload(app_context["customer_id"]),
            headers=headers,
        )
    ).json()

    send_resp = await client.post(f"/api/v1/quotes/{quote['id']}/send", json={}, headers=headers)
    assert send_resp.status_code == 200, send_resp.text
    assert send_resp.json()["success"] is True
    assert send_resp.json()["outbox_id"] is not None

    sent = (await client.get(f"/api/v1/quotes/{quote['id']}", headers=headers)).json()
    assert sent["status"] == "Sent"

    patch_resp = await client.patch(
        f"/api/v1/quotes/{quote['id']}", json={"discount": "20"}, headers=headers
    )
    assert patch_resp.status_code == 409
    item_resp = await client.post(
        f"/api/v1/quotes/{quote['id']}/items",
        json={"item_type": "Tour", "item_name": "Extra", "cost": "10"},
        headers=headers,
    )
    assert item_resp.status_code == 409

    notes_resp = await client.patch(
        f"/api/v1/quotes/{quote['id']}", json={"notes": "Call after 5pm"}, headers=headers
    )
    assert notes_resp.status_code == 200
    assert notes_resp.json()["notes"] == "Call after 5pm"

    portal_resp = await client.get(f"/api/v1/portal/quotes/{quote['quote_reference']}")
    assert portal_resp.status_code == 200

    bad_status = await client.post(
        f"/api/v1/quotes/{quote['id']}/status", json={"status": "Converted"}, headers=headers
    )
    assert bad_status.status_code == 400


async def test_quote_items_crud(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _agent_headers(app_context)
    quote = (
        await client.post(
            "/api/v1/quotes",
            json=_quote_payload(app_context["customer_id"], items=[]),
            headers=headers,
        )
    ).json()
    assert Decimal(quote["total_price"]) == Decimal("0")

    added = await client.post(
        f"/api/v1/quotes/{quote['id']}/items",
        json={"item_type": "Tour", "item_name": "Food tour", "cost": "80", "markup": "25"},
        headers=headers,
    )
    assert added.status_code == 201
    below_minimum = await client.post(
        f"/api/v1/quotes/{quote['id']}/items",
        json={"item_type": "Tour", "item_name": "Bike tour", "cost": "80", "markup": "5"},
        headers=headers,
    )
    assert below_minimum.status_code == 400
    assert "below the minimum required 20%" in below_minimum.json()["detail"]

    bad_hotel = await client.post(
        f"/api/v1/quotes/{quote['id']}/items",
        json={
            "item_type": "Hotel",
            "item_name": "Backwards stay",
            "cost": "90",
            "details": {"check_in_date": "2026-05-03", "check_out_date": "2026-05-01"},
        },
        headers=headers,
    )
    assert bad_hotel.status_code == 422

    second = await client.post(
        f"/api/v1/quotes/{quote['id']}/items",
        json={"item_type": "Transfer", "item_name": "Airport", "cost": "40"},
        headers=headers,
    )
    items = second.json()["quote_items"]
    # stored strategy is global, so the tour's own 25% is ignored
    assert Decimal(second.json()["total_price"]) == Decimal("125.40")

    updated = await client.patch(
        f"/api/v1/quotes/{quote['id']}/items/{items[1]['id']}",
        json={"cost": "60"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert Decimal(updated.json()["total_price"]) == Decimal("146.30")

    reordered = await client.post(
        f"/api/v1/quotes/{quote['id']}/items/reorder",
        json={"item_ids": [items[1]["id"], items[0]["id"]]},
        headers=headers,
    )
    assert [item["item_name"] for item in reordered.json()["quote_items"]] == [
        "Airport",
        "Food tour",
    ]

    removed = await client.delete(
        f"/api/v1/quotes/{quote['id']}/items/{items[0]['id']}", headers=headers
    )
    assert removed.status_code == 200
    assert len(removed.json()["quote_items"]) == 1

    listing = await client.get("/api/v1/quotes", params={"status": "Draft"}, headers=headers)
    assert [row["id"] for row in listing.json()] == [quote["id"]]


async def test_markup_settings_require_manager(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    agent_headers = await _agent_headers(app_context)
    manager_token = await _authenticate(
        client, app_context["manager_email"], app_context["manager_password"]
    )
    manager_headers = {"Authorization": f"Bearer {manager_token}"}

    defaults = await client.get("/api/v1/settings/markup", headers=agent_headers)
    assert defaults.status_code == 200
    assert Decimal(defaults.json()["hotel_markup"]) == Decimal("15")

    forbidden = await client.put(
        "/api/v1/settings/markup", json={"hotel_markup": "5"}, headers=agent_headers
    )
    assert forbidden.status_code == 403

    updated = await client.put(
        "/api/v1/settings/markup", json={"hotel_markup": "5"}, headers=manager_headers
    )
    assert updated.status_code == 200
    assert Decimal(updated.json()["hotel_markup"]) == Decimal("5")
    assert Decimal(updated.json()["flight_markup"]) == Decimal("10")

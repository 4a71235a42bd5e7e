"""Tests for remote event to document field mapping."""
from datetime import UTC, datetime

import pytest

from eventsync.models.event import EventStatus
from eventsync.services.document_store import GlobalScope, TenantScope
from eventsync.services.event_mapper import (
    UNTITLED_EVENT,
    build_event_fields,
    format_price_range,
    map_status,
    summarize_ticket_types,
)
from tests.fixtures.ticket_api_responses import make_event


@pytest.mark.parametrize(
    "remote_status,expected",
    [
        ("published", EventStatus.PUBLISHED),
        ("live", EventStatus.PUBLISHED),
        ("past", EventStatus.PUBLISHED),
        ("draft", EventStatus.DRAFT),
        ("sales_closed", EventStatus.DRAFT),
        (None, EventStatus.DRAFT),
    ],
)
def test_map_status(remote_status, expected):
    """Test remote status mapping; anything unrecognised stays a draft."""
    assert map_status(remote_status) == expected


@pytest.mark.parametrize(
    "prices,expected",
    [
        ([], "Free"),
        ([0], "Free"),
        ([0, 0], "Free"),
        ([1000], "$10"),
        ([1000, 1000], "$10"),
        ([0, 500], "Free - $5"),
        ([2000, 500], "$5 - $20"),
        ([250], "$3"),
        ([1234500], "$12,345"),
    ],
)
def test_format_price_range(prices, expected):
    """Test price range formatting in whole currency units."""
    assert format_price_range(prices) == expected


def test_format_price_range_uses_currency_symbol():
    """Test that known currencies get their symbol and others their code."""
    assert format_price_range([500, 1500], "gbp") == "£5 - £15"
    assert format_price_range([500], "EUR") == "€5"
    assert format_price_range([500], "jpy") == "JPY 5"


def test_summarize_ticket_types():
    """Test capacity and remaining tickets across ticket types."""
    event = make_event("ev_1", prices=[0, 500], quantities=[(100, 10), (50, 5)])

    summary = summarize_ticket_types(event["ticket_types"])

    assert summary == {
        "min_price": 0,
        "max_price": 500,
        "total_capacity": 150,
        "tickets_remaining": 135,
    }


def test_build_fields_for_event_without_ticket_types():
    """An event with no ticket types is free with zero capacity."""
    fields = build_event_fields(make_event("ev_1"), GlobalScope())

    assert fields["price_display"] == "Free"
    assert fields["min_price"] == 0
    assert fields["max_price"] == 0
    assert fields["total_capacity"] == 0
    assert fields["tickets_remaining"] == 0


def test_build_fields_maps_remote_record():
    """Test the full field mapping for a published event."""
    now = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)
    event = make_event("ev_1", name="Jazz Night", prices=[0, 500], quantities=[(100, 10), (50, 5)])

    fields = build_event_fields(event, GlobalScope(), now=now)

    assert fields["remote_event_id"] == "ev_1"
    assert fields["title"] == "Jazz Night"
    assert fields["status"] == EventStatus.PUBLISHED
    assert fields["remote_status"] == "published"
    assert fields["price_display"] == "Free - $5"
    assert fields["total_capacity"] == 150
    assert fields["tickets_remaining"] == 135
    assert fields["start_at"] == datetime(2026, 11, 20, 19, 30, tzinfo=UTC)
    assert fields["venue_name"] == "The Old Hall"
    assert fields["last_synced_at"] == now
    assert fields["raw_payload"] is event
    assert fields["meta"]["start_date"] == "2026-11-20"
    assert fields["meta"]["checkout_url"] == "https://www.tickettailor.com/checkout/ev_1"
    assert "tenant_id" not in fields


def test_build_fields_stamps_tenant_scope():
    """Tenant-scoped fields carry the tenant ID and slug label."""
    scope = TenantScope(tenant_id=7, name="Alpha", slug="alpha")

    fields = build_event_fields(make_event("ev_1"), scope)

    assert fields["tenant_id"] == 7
    assert fields["box_office_label"] == "alpha"


def test_build_fields_defaults_missing_values():
    """Missing name and status fall back to defaults."""
    fields = build_event_fields({"id": "ev_bare"}, GlobalScope())

    assert fields["title"] == UNTITLED_EVENT
    assert fields["status"] == EventStatus.DRAFT
    assert fields["start_at"] is None
    assert fields["currency"] == "usd"


def test_build_fields_falls_back_to_unix_timestamp():
    """A start block without an ISO value uses the unix timestamp."""
    event = {"id": "ev_1", "start": {"unix": 1795203000}}

    fields = build_event_fields(event, GlobalScope())

    assert fields["start_at"] == datetime.fromtimestamp(1795203000, tz=UTC)


def test_build_fields_tolerates_malformed_blocks():
    """Nested blocks of the wrong type are treated as missing."""
    event = make_event("ev_1", prices=[500])
    event["venue"] = ["The Old Hall"]
    event["start"] = "tomorrow"
    event["end"] = None
    event["images"] = ["https://cdn.tickettailor.com/x.jpg"]
    event["ticket_types"].append("vip")

    fields = build_event_fields(event, GlobalScope())

    assert fields["venue_name"] is None
    assert fields["start_at"] is None
    assert fields["end_at"] is None
    assert fields["meta"]["image_header"] == ""
    assert fields["price_display"] == "$5"
    assert len(fields["meta"]["ticket_types"]) == 1


def test_build_fields_ignores_out_of_range_timestamp():
    """An unrepresentable unix timestamp leaves the date empty."""
    fields = build_event_fields({"id": "ev_1", "start": {"unix": 10**20}}, GlobalScope())

    assert fields["start_at"] is None

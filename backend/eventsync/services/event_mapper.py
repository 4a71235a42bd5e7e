"""Mapping from remote event records to local event document fields."""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from eventsync.models.event import EventStatus
from eventsync.services.document_store import Scope, TenantScope

PUBLISHED_REMOTE_STATUSES = frozenset({"published", "live", "past"})

CURRENCY_SYMBOLS = {
    "usd": "$",
    "cad": "$",
    "aud": "$",
    "nzd": "$",
    "gbp": "£",
    "eur": "€",
}

UNTITLED_EVENT = "Untitled Event"


def map_status(remote_status: str | None) -> EventStatus:
    """Map a remote event status to the local lifecycle status."""
    if remote_status in PUBLISHED_REMOTE_STATUSES:
        return EventStatus.PUBLISHED
    return EventStatus.DRAFT


def _format_amount(minor_units: int, currency: str) -> str:
    whole = (Decimal(minor_units) / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    code = (currency or "usd").lower()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code.upper()} ")
    return f"{symbol}{int(whole):,}"


def format_price_range(prices: list[int], currency: str = "usd") -> str:
    """
    Format ticket prices as a display range.

    Args:
        prices: Ticket type prices in minor units (cents)
        currency: Currency code used for the symbol

    Returns:
        "Free", a single amount such as "$10", or a range such as "Free - $5"
    """
    if not prices:
        return "Free"

    low, high = min(prices), max(prices)
    if low == 0 and high == 0:
        return "Free"

    low_label = "Free" if low == 0 else _format_amount(low, currency)
    if low == high:
        return low_label
    return f"{low_label} - {_format_amount(high, currency)}"


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _parse_timestamp(block: dict[str, Any]) -> datetime | None:
    iso = block.get("iso")
    if iso:
        try:
            parsed = datetime.fromisoformat(str(iso).replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)

    unix = _as_int(block.get("unix"))
    if unix > 0:
        try:
            return datetime.fromtimestamp(unix, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def summarize_ticket_types(ticket_types: list[dict[str, Any]]) -> dict[str, int]:
    """Compute price bounds, capacity and remaining tickets."""
    prices = [_as_int(t.get("price")) for t in ticket_types]
    capacity = sum(_as_int(t.get("quantity_total")) for t in ticket_types)
    issued = sum(_as_int(t.get("quantity_issued")) for t in ticket_types)
    return {
        "min_price": min(prices) if prices else 0,
        "max_price": max(prices) if prices else 0,
        "total_capacity": capacity,
        "tickets_remaining": capacity - issued,
    }


def build_event_fields(event: dict[str, Any], scope: Scope, now: datetime | None = None) -> dict[str, Any]:
    """
    Derive every stored field of an event document from a remote record.

    Used for both creates and updates.

    Args:
        event: Remote event record
        scope: Sync scope; tenant scope stamps tenant_id and the label
        now: Sync timestamp (defaults to current UTC time)

    Returns:
        Field dictionary accepted by DocumentStore.create/update
    """
    now = now or datetime.now(UTC)
    raw_ticket_types = event.get("ticket_types")
    if not isinstance(raw_ticket_types, list):
        raw_ticket_types = []
    ticket_types = [t for t in raw_ticket_types if isinstance(t, dict)]
    start = _as_dict(event.get("start"))
    end = _as_dict(event.get("end"))
    venue = _as_dict(event.get("venue"))
    images = _as_dict(event.get("images"))
    currency = str(event.get("currency") or "usd").lower()
    remote_status = str(event.get("status") or "draft")
    summary = summarize_ticket_types(ticket_types)

    fields: dict[str, Any] = {
        "remote_event_id": str(event.get("id", "")),
        "title": str(event.get("name") or UNTITLED_EVENT),
        "description": str(event.get("description") or ""),
        "status": map_status(remote_status),
        "remote_status": remote_status,
        "event_series_id": event.get("event_series_id") or None,
        "currency": currency,
        "start_at": _parse_timestamp(start),
        "end_at": _parse_timestamp(end),
        "timezone": event.get("timezone") or None,
        "venue_name": venue.get("name") or None,
        "venue_country": venue.get("country") or None,
        "venue_postal_code": venue.get("postal_code") or None,
        "price_display": format_price_range([_as_int(t.get("price")) for t in ticket_types], currency),
        "raw_payload": event,
        "last_synced_at": now,
        "meta": {
            "start_date": start.get("date", ""),
            "start_time": start.get("time", ""),
            "start_formatted": start.get("formatted", ""),
            "end_date": end.get("date", ""),
            "end_time": end.get("time", ""),
            "end_formatted": end.get("formatted", ""),
            "image_header": images.get("header", ""),
            "image_thumbnail": images.get("thumbnail", ""),
            "checkout_url": event.get("checkout_url", ""),
            "event_url": event.get("url", ""),
            "call_to_action": event.get("call_to_action", ""),
            "online_event": event.get("online_event", "false"),
            "private": event.get("private", "false"),
            "hidden": event.get("hidden", "false"),
            "tickets_available": event.get("tickets_available", "false"),
            "revenue": event.get("revenue", 0),
            "total_orders": event.get("total_orders", 0),
            "total_issued_tickets": event.get("total_issued_tickets", 0),
            "ticket_types": ticket_types,
        },
        **summary,
    }

    if isinstance(scope, TenantScope):
        fields["tenant_id"] = scope.tenant_id
        fields["box_office_label"] = scope.slug

    return fields

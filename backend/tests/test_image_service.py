"""Tests for event image download and storage."""
import httpx
import pytest

from eventsync.services.document_store import GlobalScope, SqlEventStore
from eventsync.services.event_mapper import build_event_fields
from eventsync.services.image_service import ImageFetcher, ImageFetchError, is_allowed_image_url
from tests.fixtures.ticket_api_responses import make_event

ALLOWED = ["tickettailor.com"]


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://tickettailor.com/img.jpg", True),
        ("https://cdn.tickettailor.com/images/a.jpg", True),
        ("https://CDN.TicketTailor.com/a.jpg", True),
        ("http://cdn.tickettailor.com/a.jpg", False),
        ("https://tickettailor.com.evil.com/a.jpg", False),
        ("https://eviltickettailor.com/a.jpg", False),
        ("file:///etc/passwd", False),
        ("", False),
    ],
)
def test_is_allowed_image_url(url, expected):
    """Only HTTPS URLs on allowed hosts or their subdomains pass."""
    assert is_allowed_image_url(url, ALLOWED) is expected


def test_fetch_rejects_disallowed_url():
    """Test that a disallowed URL raises without a request."""
    requests = []
    fetcher = ImageFetcher(
        allowed_domains=ALLOWED,
        transport=httpx.MockTransport(lambda r: requests.append(r) or httpx.Response(200)),
    )

    with pytest.raises(ImageFetchError):
        fetcher.fetch("https://example.com/a.jpg")

    assert requests == []


def test_fetch_returns_content():
    """Test a successful download."""
    fetcher = ImageFetcher(
        allowed_domains=ALLOWED,
        transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"img")),
    )

    assert fetcher.fetch("https://cdn.tickettailor.com/a.jpg") == b"img"


def test_fetch_http_error_status():
    """Test that a non-200 response raises."""
    fetcher = ImageFetcher(
        allowed_domains=ALLOWED,
        transport=httpx.MockTransport(lambda r: httpx.Response(404)),
    )

    with pytest.raises(ImageFetchError, match="HTTP 404"):
        fetcher.fetch("https://cdn.tickettailor.com/a.jpg")


def test_set_primary_image_replaces_changed_url(db, media_dir):
    """A new source URL downloads a new file and removes the old one."""
    fetcher = ImageFetcher(
        allowed_domains=ALLOWED,
        transport=httpx.MockTransport(lambda r: httpx.Response(200, content=r.url.path.encode())),
    )
    store = SqlEventStore(db, image_fetcher=fetcher, media_dir=media_dir)
    event_id = store.create(build_event_fields(make_event("ev_1", name="Jazz Night"), GlobalScope()))

    assert store.set_primary_image(event_id, "https://cdn.tickettailor.com/one.jpg") is True
    first_ref = store.get(event_id).image_ref
    assert store.set_primary_image(event_id, "https://cdn.tickettailor.com/one.jpg") is False
    assert store.set_primary_image(event_id, "https://cdn.tickettailor.com/two.jpg") is True

    second_ref = store.get(event_id).image_ref
    assert second_ref != first_ref
    assert not (media_dir / first_ref).exists()
    assert (media_dir / second_ref).read_bytes() == b"/two.jpg"


def test_delete_removes_image_file(db, media_dir):
    """Deleting a document removes its stored image."""
    fetcher = ImageFetcher(
        allowed_domains=ALLOWED,
        transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"img")),
    )
    store = SqlEventStore(db, image_fetcher=fetcher, media_dir=media_dir)
    event_id = store.create(build_event_fields(make_event("ev_1"), GlobalScope()))
    store.set_primary_image(event_id, "https://cdn.tickettailor.com/one.jpg")
    image_ref = store.get(event_id).image_ref

    store.delete(event_id)

    assert store.get(event_id) is None
    assert not (media_dir / image_ref).exists()

"""Ticketing platform REST API client.

Wraps the upstream GET endpoints with cursor pagination. Every request is
authenticated with HTTP Basic (API key as username, empty password) and runs
on its own short-lived ``httpx.Client``.
"""
from typing import Any

import httpx
import structlog

from eventsync.core.config import settings

logger = structlog.get_logger(__name__)


class ApiError(Exception):
    """Base error for upstream API failures."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class ApiConfigurationError(ApiError):
    """Client is missing a usable credential; no request was made."""


class ApiTransportError(ApiError):
    """Network-level failure: timeout, DNS, refused connection."""


class ApiResponseError(ApiError):
    """The API answered with a non-200 status or an unreadable body."""


class PaginationLimitError(ApiError):
    """Pagination did not terminate within the page cap."""


class TicketApiClient:
    """Client for one tenant's ticketing account."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        max_pages: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Tenant API key (plaintext)
            base_url: API root including version, e.g. https://api.tickettailor.com/v1
            timeout: Per-request timeout in seconds
            page_size: Items requested per page (upstream max is 100)
            max_pages: Page cap for fetch_all
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key or ""
        self.base_url = (base_url or settings.REMOTE_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REMOTE_API_TIMEOUT
        self.page_size = page_size or settings.REMOTE_API_PAGE_SIZE
        self.max_pages = max_pages or settings.REMOTE_API_MAX_PAGES
        self._transport = transport

    def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Make an authenticated GET request.

        Args:
            endpoint: Path below the base URL, e.g. "/events"
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            ApiConfigurationError: If no API key is configured
            ApiTransportError: On network failures
            ApiResponseError: On non-200 responses or invalid JSON
        """
        if not self.api_key:
            raise ApiConfigurationError("Ticketing API key not configured.")

        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(
                    url,
                    params=params,
                    auth=(self.api_key, ""),
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            logger.error("ticket_api_timeout", endpoint=endpoint, error=str(e))
            raise ApiTransportError(f"Request to {endpoint} timed out") from e
        except httpx.HTTPError as e:
            logger.error("ticket_api_transport_error", endpoint=endpoint, error=str(e))
            raise ApiTransportError(f"Request to {endpoint} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code != 200:
            message = f"HTTP {response.status_code}"
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
            logger.error(
                "ticket_api_error",
                endpoint=endpoint,
                status_code=response.status_code,
                message=message,
            )
            raise ApiResponseError(message, status_code=response.status_code, body=body)

        if not isinstance(body, dict):
            raise ApiResponseError(
                f"Unexpected response body from {endpoint}",
                status_code=response.status_code,
                body=response.text,
            )

        return body

    def fetch_page(
        self, resource: str, cursor: str | None = None
    ) -> tuple[list[dict[str, Any]], str | None]:
        """
        Fetch one page of a collection endpoint.

        Args:
            resource: Collection path, e.g. "/events"
            cursor: ID of the last item of the previous page

        Returns:
            Tuple of (items, next_cursor). next_cursor is None on the last page.
        """
        params: dict[str, Any] = {"limit": self.page_size}
        if cursor:
            params["starting_after"] = cursor

        body = self._get(resource, params)
        items = body.get("data") or []
        links = body.get("links") or {}
        if not isinstance(items, list) or not isinstance(links, dict):
            raise ApiResponseError(f"Malformed page from {resource}", status_code=200, body=body)

        if not links.get("next") or not items:
            return items, None

        last_id = items[-1].get("id") if isinstance(items[-1], dict) else None
        if not last_id:
            # Stopping here would hand back a partial listing.
            logger.error("ticket_api_cursor_missing", resource=resource, cursor=cursor)
            raise ApiResponseError(
                f"Next page of {resource} advertised but last item has no id",
                status_code=200,
                body=body,
            )
        return items, str(last_id)

    def fetch_all(self, resource: str) -> list[dict[str, Any]]:
        """
        Fetch every page of a collection endpoint.

        Args:
            resource: Collection path, e.g. "/events"

        Returns:
            All items across pages

        Raises:
            PaginationLimitError: If the API still reports a next page after max_pages
        """
        records: list[dict[str, Any]] = []
        cursor: str | None = None

        for page in range(1, self.max_pages + 1):
            items, cursor = self.fetch_page(resource, cursor)
            records.extend(items)
            if cursor is None:
                logger.debug("ticket_api_fetch_complete", resource=resource, pages=page, count=len(records))
                return records

        logger.error("ticket_api_pagination_limit", resource=resource, max_pages=self.max_pages)
        raise PaginationLimitError(
            f"Pagination for {resource} exceeded {self.max_pages} pages; aborting"
        )

    def ping(self) -> dict[str, Any]:
        """Check connectivity and credentials."""
        return self._get("/ping")

    def overview(self) -> dict[str, Any]:
        """Fetch the account overview; used to validate API keys."""
        return self._get("/overview")

    def get_events(self) -> list[dict[str, Any]]:
        return self.fetch_all("/events")

    def get_event(self, event_id: str) -> dict[str, Any]:
        return self._get(f"/events/{event_id}")

    def get_event_series(self) -> list[dict[str, Any]]:
        return self.fetch_all("/event_series")

    def get_event_series_by_id(self, series_id: str) -> dict[str, Any]:
        return self._get(f"/event_series/{series_id}")

    def get_orders(self) -> list[dict[str, Any]]:
        return self.fetch_all("/orders")

    def get_issued_tickets(self) -> list[dict[str, Any]]:
        return self.fetch_all("/issued_tickets")

    def get_vouchers(self) -> list[dict[str, Any]]:
        return self.fetch_all("/vouchers")

    def get_products(self) -> list[dict[str, Any]]:
        return self.fetch_all("/products")

    def get_checkout_forms(self) -> list[dict[str, Any]]:
        return self.fetch_all("/checkout_forms")

    def get_stores(self) -> list[dict[str, Any]]:
        return self.fetch_all("/stores")

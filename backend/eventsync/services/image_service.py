"""Event image download with an explicit host allow-list."""
from urllib.parse import urlsplit

import httpx
import structlog

from eventsync.core.config import settings

logger = structlog.get_logger(__name__)


class ImageFetchError(Exception):
    """Raised when an image URL is rejected or cannot be downloaded."""


def is_allowed_image_url(url: str, allowed_domains: list[str]) -> bool:
    """
    Check that an image URL is safe to download.

    Only HTTPS URLs whose host is an allowed domain, or a subdomain of one,
    pass.

    Args:
        url: Candidate image URL
        allowed_domains: Allowed host names

    Returns:
        True if the URL may be fetched
    """
    if not url:
        return False

    try:
        parts = urlsplit(url)
        host = (parts.hostname or "").lower()
    except ValueError:
        return False

    if parts.scheme.lower() != "https" or not host:
        return False

    for domain in allowed_domains:
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return True

    return False


class ImageFetcher:
    """Downloads event images from allow-listed hosts."""

    def __init__(
        self,
        allowed_domains: list[str] | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.allowed_domains = allowed_domains if allowed_domains is not None else settings.IMAGE_ALLOWED_DOMAINS
        self.timeout = timeout if timeout is not None else settings.IMAGE_FETCH_TIMEOUT
        self._transport = transport

    def is_allowed(self, url: str) -> bool:
        return is_allowed_image_url(url, self.allowed_domains)

    def fetch(self, url: str) -> bytes:
        """
        Download an image.

        Args:
            url: Image URL

        Returns:
            Raw image bytes

        Raises:
            ImageFetchError: If the URL is not allowed or the download fails
        """
        if not self.is_allowed(url):
            logger.warning("image_url_rejected", url=url)
            raise ImageFetchError(f"Image URL not allowed: {url}")

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            raise ImageFetchError(f"Image download failed: {e}") from e

        if response.status_code != 200:
            raise ImageFetchError(f"Image download failed: HTTP {response.status_code}")

        return response.content

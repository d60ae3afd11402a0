"""Authenticated document fetcher shared by every provider."""

from typing import Any, Mapping, Optional
from urllib.parse import urlparse

import httpx
import structlog
from bs4 import BeautifulSoup

from ordersync.config import settings
from ordersync.core.exceptions import FetchError
from ordersync.scrapers.utils.rate_limiter import DomainRateLimiter
from ordersync.scrapers.utils.retry import http_retrying


logger = structlog.get_logger(__name__)


def build_client(
    cookies: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an HTTP client carrying the browser session's cookies.

    Args:
        cookies: Session cookies exported from the logged-in browser
        transport: Optional transport override (used by tests)
    """
    return httpx.AsyncClient(
        cookies=dict(cookies or {}),
        headers={
            "User-Agent": settings.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        },
        timeout=settings.REQUEST_TIMEOUT,
        follow_redirects=True,
        transport=transport,
    )


class DocumentFetcher:
    """GETs a storefront URL and returns the parsed document.

    Relies on the session already held by the client; performs no
    credential handling of its own. Network errors and non-2xx responses
    surface as FetchError after retries are exhausted.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        rate_limiter: Optional[DomainRateLimiter] = None,
        retry_attempts: Optional[int] = None,
    ):
        self.client = client
        self.rate_limiter = rate_limiter
        self.retry_attempts = retry_attempts or settings.FETCH_RETRY_ATTEMPTS

    async def fetch(
        self, url: str, params: Optional[Mapping[str, Any]] = None
    ) -> BeautifulSoup:
        """Fetch url and parse the body as HTML.

        Args:
            url: Fully-qualified URL
            params: Optional query parameters merged into the URL

        Returns:
            BeautifulSoup document

        Raises:
            FetchError: On network failure or a non-2xx response
        """
        logger.debug("fetching_document", url=url, params=dict(params or {}))

        try:
            async for attempt in http_retrying(self.retry_attempts):
                with attempt:
                    if self.rate_limiter:
                        await self.rate_limiter.acquire(urlparse(url).netloc)
                    response = await self.client.get(url, params=params)
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("fetch_bad_status", url=url, status=status)
            raise FetchError(url, f"HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.warning("fetch_failed", url=url, error=str(e), error_type=type(e).__name__)
            raise FetchError(url, str(e) or type(e).__name__) from e

        logger.info("document_fetched", url=str(response.url), status=response.status_code)
        return BeautifulSoup(response.text, "html.parser")

    async def close(self) -> None:
        await self.client.aclose()

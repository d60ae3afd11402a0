"""Tests for the document fetcher and its retry policy."""

import httpx
import pytest
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_none

from ordersync.core.exceptions import FetchError
from ordersync.scrapers.fetcher import DocumentFetcher, build_client
from ordersync.scrapers.utils.retry import is_retryable


URL = "https://www.amazon.com/gp/css/order-history?disableCsd=no-js"


class TestDocumentFetcher:
    """Tests for DocumentFetcher.fetch."""

    async def test_returns_parsed_document(self, site, context):
        site.add(URL, "<html><body><h1 id='t'>Your Orders</h1></body></html>")

        doc = await context.fetcher.fetch(URL)

        assert doc.select_one("#t").get_text() == "Your Orders"

    async def test_sends_session_cookies(self, site):
        site.add(URL, "<html></html>")
        client = build_client(
            cookies={"session-id": "abc"}, transport=httpx.MockTransport(site.handler)
        )
        fetcher = DocumentFetcher(client, retry_attempts=1)
        try:
            await fetcher.fetch(URL)
        finally:
            await fetcher.close()

        assert "session-id=abc" in site.requests[0].headers["cookie"]

    async def test_non_2xx_raises_fetch_error(self, site, context):
        site.add(URL, "<html>oops</html>", status=403)

        with pytest.raises(FetchError) as exc_info:
            await context.fetcher.fetch(URL)

        assert exc_info.value.status_code == 403
        assert exc_info.value.url == URL

    async def test_network_error_raises_fetch_error(self, site, context):
        site.add_error(URL, httpx.ConnectError("connection refused"))

        with pytest.raises(FetchError) as exc_info:
            await context.fetcher.fetch(URL)

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestRetryPolicy:
    """Tests for which failures are retried."""

    @staticmethod
    def _status_error(status: int) -> httpx.HTTPStatusError:
        request = httpx.Request("GET", URL)
        response = httpx.Response(status, request=request)
        return httpx.HTTPStatusError("bad status", request=request, response=response)

    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_transient_statuses_retried(self, status):
        assert is_retryable(self._status_error(status))

    @pytest.mark.parametrize("status", [400, 403, 404])
    def test_client_errors_not_retried(self, status):
        assert not is_retryable(self._status_error(status))

    def test_transport_errors_retried(self):
        assert is_retryable(httpx.ConnectError("refused"))
        assert is_retryable(httpx.ReadTimeout("slow"))

    def test_other_errors_not_retried(self):
        assert not is_retryable(ValueError("parse"))


class CountingLimiter:
    """Rate limiter double recording which hosts were charged."""

    def __init__(self):
        self.hosts = []

    async def acquire(self, domain: str, tokens: float = 1.0) -> None:
        self.hosts.append(domain)


class TestRateLimitedRetries:
    """Every attempt, including retries, draws on the host's budget."""

    @pytest.fixture
    def no_backoff(self, monkeypatch):
        def retrying(attempts, max_wait=30.0):
            return AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_none(),
                retry=retry_if_exception(is_retryable),
                reraise=True,
            )

        monkeypatch.setattr("ordersync.scrapers.fetcher.http_retrying", retrying)

    async def test_retries_acquire_the_limiter(self, site, no_backoff):
        site.add(URL, "<html>busy</html>", status=503)
        limiter = CountingLimiter()
        fetcher = DocumentFetcher(site.client(), rate_limiter=limiter, retry_attempts=3)
        try:
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch(URL)
        finally:
            await fetcher.close()

        assert exc_info.value.status_code == 503
        assert len(site.requests) == 3
        assert limiter.hosts == ["www.amazon.com"] * 3

    async def test_single_acquire_on_success(self, site, no_backoff):
        site.add(URL, "<html></html>")
        limiter = CountingLimiter()
        fetcher = DocumentFetcher(site.client(), rate_limiter=limiter, retry_attempts=3)
        try:
            await fetcher.fetch(URL)
        finally:
            await fetcher.close()

        assert limiter.hosts == ["www.amazon.com"]

"""Pytest configuration and shared fixtures."""

from typing import Any, Dict, FrozenSet, List, Tuple, Union
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest

from ordersync.scrapers.base import SyncContext
from ordersync.scrapers.fetcher import DocumentFetcher, build_client


RouteKey = Tuple[str, str, FrozenSet[Tuple[str, str]]]


def _key(host: str, path: str, params) -> RouteKey:
    return host, path, frozenset(params)


class FakeSite:
    """In-memory storefront served through httpx.MockTransport.

    Routes are matched on host, path and the set of query parameters, so
    parameter order does not matter.
    """

    def __init__(self):
        self._routes: Dict[RouteKey, Union[Tuple[int, str], Exception]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, url: str, html: str, status: int = 200) -> None:
        parts = urlsplit(url)
        self._routes[_key(parts.netloc, parts.path, parse_qsl(parts.query, keep_blank_values=True))] = (status, html)

    def add_error(self, url: str, error: Exception) -> None:
        parts = urlsplit(url)
        self._routes[_key(parts.netloc, parts.path, parse_qsl(parts.query, keep_blank_values=True))] = error

    def requested_urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get(
            _key(request.url.host, request.url.path, request.url.params.multi_items())
        )
        if route is None:
            return httpx.Response(404, text="<html><body>Not found</body></html>")
        if isinstance(route, Exception):
            raise route
        status, html = route
        return httpx.Response(status, text=html, headers={"Content-Type": "text/html"})

    def client(self) -> httpx.AsyncClient:
        return build_client(transport=httpx.MockTransport(self.handler))


class RecordingSink:
    """Diagnostic sink that keeps every value it receives."""

    def __init__(self):
        self.entries: List[Any] = []

    async def __call__(self, value: Any) -> None:
        self.entries.append(value)

    @property
    def errors(self) -> List[BaseException]:
        return [e for e in self.entries if isinstance(e, BaseException)]


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
async def context(site: FakeSite, sink: RecordingSink):
    """SyncContext over the fake site: single attempt, no rate limiting."""
    fetcher = DocumentFetcher(site.client(), retry_attempts=1)
    yield SyncContext(fetcher=fetcher, debug_log=sink, max_concurrency=3)
    await fetcher.close()

"""Provider contract and the base class storefront providers build on.

The sync pipeline only depends on the OrderProvider protocol. BaseProvider
supplies the shared fetch/probe plumbing so a storefront implementation is
reduced to URL templates and its extraction heuristics.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog
from bs4 import BeautifulSoup

from ordersync.config import settings
from ordersync.core.logging import StructlogDiagnosticSink
from ordersync.models import AuthResult, AuthStatus, Item, Order, OrderTransaction, ProgressState
from ordersync.scrapers.fetcher import DocumentFetcher


DiagnosticSink = Callable[[Any], Awaitable[None]]
ProgressCallback = Callable[[ProgressState], None]


@dataclass
class SyncContext:
    """Everything one pipeline invocation needs, passed explicitly.

    Attributes:
        fetcher: Document fetcher bound to the authenticated client
        debug_log: Async diagnostic sink; must not raise
        max_concurrency: Ceiling for simultaneous detail-page fetches
    """

    fetcher: DocumentFetcher
    debug_log: DiagnosticSink = field(default_factory=StructlogDiagnosticSink)
    max_concurrency: int = field(default_factory=lambda: settings.MAX_CONCURRENT_FETCHES)

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")


@dataclass
class ListingPage:
    """Orders found on one listing page plus the page-count signal it carries."""

    orders: List[Order]
    page_count: int = 1


class OrderProvider(Protocol):
    """Capabilities the sync pipeline needs from a storefront."""

    slug: str
    name: str

    async def probe_auth(self) -> AuthResult:
        ...

    async def fetch_listing(self, year: Optional[int], page: int) -> ListingPage:
        ...

    async def fetch_order_transactions(self, order: Order) -> Order:
        ...


def add_query(url: str, params: Mapping[str, Any]) -> str:
    """Append query parameters to a URL that may already carry some."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((key, str(value)) for key, value in params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


class ItemAllocator:
    """Hands out an order's items so no item lands in two transactions of a group.

    Items are split into the charge group and the refund group; the first
    transaction of each group takes all of that group's items and later ones
    get none.
    """

    def __init__(self, items: List[Item]):
        self._pending: Dict[bool, List[Item]] = {
            False: [item for item in items if not item.refunded],
            True: [item for item in items if item.refunded],
        }

    def take(self, refund: bool) -> List[Item]:
        items, self._pending[refund] = self._pending[refund], []
        return items


class BaseProvider(ABC):
    """Abstract base class for storefront order-history providers.

    Subclasses set the URL constants and implement the extraction methods.
    Extraction methods are pure: they take a parsed document and return
    records, never raising for a selector miss or malformed text.
    """

    slug: str = ""  # Must be overridden in subclass (e.g., "amazon")
    name: str = ""  # Display name (e.g., "Amazon")

    ORDER_PAGES_URL: str = ""
    ORDER_DETAILS_URL: str = ""
    PAGE_SIZE = 10

    def __init__(self, context: SyncContext):
        self.context = context
        self.logger = structlog.get_logger(provider=self.slug)

    @property
    def fetcher(self) -> DocumentFetcher:
        return self.context.fetcher

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    @abstractmethod
    def listing_url(self, year: Optional[int], page: int) -> str:
        """URL of listing page `page` (1-based), optionally filtered to a year."""

    @abstractmethod
    def detail_url(self, order: Order) -> str:
        """URL of the detail page for order."""

    def page_offset(self, page: int) -> int:
        return (page - 1) * self.PAGE_SIZE

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    @abstractmethod
    def parse_auth(self, soup: BeautifulSoup) -> AuthResult:
        """Derive auth status and earliest order year from the history page."""

    @abstractmethod
    def parse_listing(self, soup: BeautifulSoup) -> List[Order]:
        """Extract listing-stage orders from a listing page."""

    @abstractmethod
    def parse_page_count(self, soup: BeautifulSoup) -> int:
        """Number of listing pages signalled by the first listing page."""

    @abstractmethod
    def parse_transactions(self, soup: BeautifulSoup, order: Order) -> List[OrderTransaction]:
        """Extract the transactions of an order from its detail page."""

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def probe_auth(self) -> AuthResult:
        """Check whether the session is logged in to this storefront.

        Never raises: any fetch or parse error is reported as FAILURE.
        """
        self.logger.info("checking_auth")
        try:
            soup = await self.fetcher.fetch(self.ORDER_PAGES_URL)
            result = self.parse_auth(soup)
        except Exception as e:
            self.logger.error("auth_check_failed", error=str(e), error_type=type(e).__name__)
            await self.context.debug_log(e)
            return AuthResult(status=AuthStatus.FAILURE)

        self.logger.info(
            "auth_checked",
            status=result.status.value,
            starting_year=result.starting_year,
        )
        return result

    async def fetch_listing(self, year: Optional[int], page: int) -> ListingPage:
        url = self.listing_url(year, page)
        soup = await self.fetcher.fetch(url)
        orders = self.parse_listing(soup)
        self.logger.info("listing_page_parsed", page=page, year=year, orders=len(orders))
        return ListingPage(orders=orders, page_count=self.parse_page_count(soup))

    async def fetch_order_transactions(self, order: Order) -> Order:
        """Fetch the order's detail page and attach its transactions."""
        self.logger.debug("fetching_order", order_id=order.id)
        soup = await self.fetcher.fetch(self.detail_url(order))
        order.transactions = self.parse_transactions(soup, order)
        self.logger.debug(
            "order_parsed",
            order_id=order.id,
            transactions=len(order.transactions),
        )
        return order

    async def fetch_orders(
        self,
        year: Optional[int] = None,
        max_pages: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[Order]:
        """Run the full listing + detail pipeline for this provider."""
        from ordersync.scrapers.orchestrator import SyncOrchestrator

        orchestrator = SyncOrchestrator(self.context)
        return await orchestrator.fetch_orders(self, year, max_pages, on_progress)

    def status_message(self) -> Dict[str, str]:
        """User-facing remediation text for non-success auth states."""
        return {
            "not_logged_in": f"Log in to {self.name} and try again.",
            "failure": (
                f"Failed to connect to {self.name}. "
                "Ensure the extension has been granted access."
            ),
        }

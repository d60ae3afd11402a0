"""Sequential listing-page discovery."""

from typing import List, Optional

import structlog

from ordersync.core.exceptions import FetchError, ListingError
from ordersync.models import Order, ProgressPhase, ProgressState
from ordersync.scrapers.base import OrderProvider, ProgressCallback


logger = structlog.get_logger(__name__)


def _ignore_progress(state: ProgressState) -> None:
    return None


class PaginationDriver:
    """Fetches listing pages 1..N in order and concatenates their orders.

    N comes from the provider's page-count signal on page 1, capped by
    max_pages. Pages are requested one at a time so the scan phase never
    adds concurrent load; any failure here aborts the provider's sync.
    """

    async def collect(
        self,
        provider: OrderProvider,
        year: Optional[int] = None,
        max_pages: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[Order]:
        """Discover every listing-stage order for provider.

        Args:
            provider: Storefront to scan
            year: Optional order-history year filter
            max_pages: Optional cap on the number of pages fetched
            on_progress: Called with page-scan progress after each page

        Returns:
            Orders in page order

        Raises:
            ListingError: If any listing page cannot be fetched
        """
        report = on_progress or _ignore_progress
        phase = ProgressPhase.page_scan(provider.slug)
        log = logger.bind(provider=provider.slug, year=year)

        first = await self._fetch_page(provider, year, 1)

        end_page = max(1, first.page_count)
        if max_pages and max_pages < end_page:
            end_page = max_pages

        log.info("listing_scan_started", pages=end_page, max_pages=max_pages)
        report(ProgressState(phase=phase, total=end_page, complete=0))

        orders = list(first.orders)
        report(ProgressState(phase=phase, total=end_page, complete=1))

        for page in range(2, end_page + 1):
            listing = await self._fetch_page(provider, year, page)
            orders.extend(listing.orders)
            report(ProgressState(phase=phase, total=end_page, complete=page))

        log.info("listing_scan_complete", pages=end_page, orders=len(orders))
        return orders

    @staticmethod
    async def _fetch_page(provider: OrderProvider, year: Optional[int], page: int):
        try:
            return await provider.fetch_listing(year, page)
        except FetchError as e:
            logger.error("listing_page_failed", provider=provider.slug, page=page, error=str(e))
            raise ListingError(provider.slug, f"page {page}: {e.message}") from e

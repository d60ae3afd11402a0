"""Sync orchestration: listing scan, detail downloads and progress reporting.

Connects the pagination driver and the bounded executor for one provider,
and runs auth probe + fetch across several providers for a full sync.
"""

from typing import List, Optional, Sequence

import structlog

from ordersync.models import Order, ProgressPhase, ProgressState, SyncResult, TaskOutcome
from ordersync.scrapers.base import OrderProvider, ProgressCallback, SyncContext
from ordersync.scrapers.executor import BoundedExecutor
from ordersync.scrapers.pagination import PaginationDriver


logger = structlog.get_logger(__name__)


def _ignore_progress(state: ProgressState) -> None:
    return None


class SyncOrchestrator:
    """Drives auth check -> listing scan -> detail downloads for providers.

    Detail failures drop the affected order and are reported to the
    diagnostic sink; listing failures propagate from fetch_orders and are
    recorded per provider by sync.
    """

    def __init__(self, context: SyncContext):
        self.context = context
        self.paginator = PaginationDriver()
        self.executor = BoundedExecutor(context.max_concurrency)
        self.logger = logger.bind(service="sync_orchestrator")

    async def fetch_orders(
        self,
        provider: OrderProvider,
        year: Optional[int] = None,
        max_pages: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[Order]:
        """Fetch every order with its transactions for one provider.

        Args:
            provider: Storefront to sync
            year: Optional order-history year filter
            max_pages: Optional cap on listing pages
            on_progress: Receives page-scan then order-download snapshots

        Returns:
            Orders whose detail page was fetched and parsed, in no
            particular order

        Raises:
            ListingError: If listing discovery fails
        """
        report = on_progress or _ignore_progress
        log = self.logger.bind(provider=provider.slug)

        orders = await self.paginator.collect(provider, year, max_pages, report)

        phase = ProgressPhase.order_download(provider.slug)
        total = len(orders)
        processed = 0
        completed: List[Order] = []

        report(ProgressState(phase=phase, total=total, complete=0))
        log.info("order_download_started", total=total, concurrency=self.executor.limit)

        async def record(outcome: TaskOutcome) -> None:
            nonlocal processed
            processed += 1
            if outcome.ok:
                completed.append(outcome.order)
            report(ProgressState(phase=phase, total=total, complete=processed))

            if not outcome.ok:
                log.warning(
                    "order_download_failed",
                    order_id=outcome.order.id,
                    error=str(outcome.error),
                    error_type=type(outcome.error).__name__,
                )
                await self.context.debug_log(outcome.error)

        await self.executor.run(orders, provider.fetch_order_transactions, record)

        log.info(
            "order_download_complete",
            total=total,
            succeeded=len(completed),
            failed=total - len(completed),
        )
        return completed

    async def sync(
        self,
        providers: Sequence[OrderProvider],
        year: Optional[int] = None,
        max_pages: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[SyncResult]:
        """Probe and sync each provider in turn.

        A provider that is not logged in is skipped; one whose listing scan
        fails is reported with its error. Neither stops the others.
        """
        report = on_progress or _ignore_progress
        results: List[SyncResult] = []

        for provider in providers:
            log = self.logger.bind(provider=provider.slug)
            auth = await provider.probe_auth()

            if not auth.ok:
                log.warning("provider_skipped", status=auth.status.value)
                results.append(SyncResult(provider=provider.slug, auth=auth))
                continue

            try:
                orders = await self.fetch_orders(provider, year, max_pages, report)
            except Exception as e:
                log.error("provider_sync_failed", error=str(e), exc_info=True)
                await self.context.debug_log(e)
                results.append(SyncResult(provider=provider.slug, auth=auth, error=e))
                continue

            results.append(SyncResult(provider=provider.slug, auth=auth, orders=orders))

        report(
            ProgressState(
                phase=ProgressPhase.COMPLETE,
                total=len(providers),
                complete=len(results),
            )
        )
        self.logger.info(
            "sync_complete",
            providers=len(providers),
            succeeded=sum(1 for r in results if r.ok),
            orders=sum(len(r.orders) for r in results),
        )
        return results

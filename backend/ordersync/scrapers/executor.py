"""Bounded-concurrency runner for per-order detail tasks."""

import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional

from ordersync.models import Order, TaskOutcome


OrderTask = Callable[[Order], Awaitable[Order]]
CompletionHook = Callable[[TaskOutcome], Awaitable[None]]


class BoundedExecutor:
    """Runs one task per order with at most `limit` tasks in flight.

    Each task is isolated: an exception is captured in its TaskOutcome and
    never reaches sibling tasks or the caller.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit

    async def run(
        self,
        orders: Iterable[Order],
        task: OrderTask,
        on_complete: Optional[CompletionHook] = None,
    ) -> List[TaskOutcome]:
        """Run task over orders.

        Args:
            orders: Listing-stage orders
            task: Coroutine function enriching one order
            on_complete: Awaited after each task, in completion order

        Returns:
            One outcome per order, in completion order
        """
        semaphore = asyncio.Semaphore(self.limit)
        outcomes: List[TaskOutcome] = []

        async def worker(order: Order) -> None:
            async with semaphore:
                try:
                    outcome = TaskOutcome(order=await task(order))
                except Exception as e:
                    outcome = TaskOutcome(order=order, error=e)
            outcomes.append(outcome)
            if on_complete:
                await on_complete(outcome)

        await asyncio.gather(*(worker(order) for order in orders))
        return outcomes

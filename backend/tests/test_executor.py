"""Tests for the bounded-concurrency executor."""

import asyncio

import pytest

from ordersync.models import Order, TaskOutcome
from ordersync.scrapers.executor import BoundedExecutor


class InFlightTracker:
    """Task double that records how many calls overlap."""

    def __init__(self, delay: float = 0.01, fail_ids=()):
        self.delay = delay
        self.fail_ids = set(fail_ids)
        self.in_flight = 0
        self.peak = 0
        self.calls = 0

    async def __call__(self, order: Order) -> Order:
        self.calls += 1
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if order.id in self.fail_ids:
                raise RuntimeError(f"detail page for {order.id} exploded")
            order.transactions = []
            return order
        finally:
            self.in_flight -= 1


def make_orders(count: int):
    return [Order(id=f"order-{n}") for n in range(count)]


class TestBoundedExecutor:
    """Tests for BoundedExecutor.run."""

    @pytest.mark.parametrize("limit, count", [(1, 5), (3, 13), (5, 40)])
    async def test_never_exceeds_limit(self, limit, count):
        task = InFlightTracker()
        outcomes = await BoundedExecutor(limit).run(make_orders(count), task)

        assert task.peak <= limit
        assert task.peak == min(limit, count)
        assert task.calls == count
        assert len(outcomes) == count

    async def test_failures_are_isolated(self):
        task = InFlightTracker(fail_ids={"order-2", "order-7"})
        outcomes = await BoundedExecutor(3).run(make_orders(10), task)

        succeeded = [o for o in outcomes if o.ok]
        failed = [o for o in outcomes if not o.ok]

        assert len(succeeded) == 8
        assert {o.order.id for o in failed} == {"order-2", "order-7"}
        assert all(isinstance(o.error, RuntimeError) for o in failed)
        assert all(o.order.transactions == [] for o in succeeded)

    async def test_completion_hook_sees_every_outcome(self):
        seen = []

        async def on_complete(outcome: TaskOutcome) -> None:
            seen.append(outcome.order.id)

        task = InFlightTracker(fail_ids={"order-0"})
        await BoundedExecutor(2).run(make_orders(4), task, on_complete)

        assert sorted(seen) == ["order-0", "order-1", "order-2", "order-3"]

    async def test_empty_input(self):
        assert await BoundedExecutor(2).run([], InFlightTracker()) == []

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError, match="at least 1"):
            BoundedExecutor(0)

"""Token bucket rate limiter for pacing requests per storefront domain."""

import asyncio
import time
from typing import Dict, Optional

import structlog

from ordersync.config import settings


logger = structlog.get_logger(__name__)


class TokenBucket:
    """Request budget for one host: starts full, refills at `rpm` per minute.

    Burst capacity is 10% of the per-minute rate, with a floor of 2.
    """

    def __init__(self, host: str, rpm: int):
        self.host = host
        self.rate = rpm / 60.0
        self.capacity = max(2.0, rpm / 10.0)
        self.tokens = self.capacity
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_refill) * self.rate)
        self.last_refill = now

    def wait_time(self, tokens: float = 1.0) -> float:
        """Seconds until `tokens` are available, after refilling."""
        self._refill()
        return max(0.0, (tokens - self.tokens) / self.rate)

    async def acquire(self, tokens: float = 1.0) -> None:
        async with self._lock:
            wait = self.wait_time(tokens)
            while wait > 0:
                logger.debug("rate_limit_wait", host=self.host, wait_seconds=round(wait, 2))
                await asyncio.sleep(wait)
                wait = self.wait_time(tokens)
            self.tokens -= tokens


class DomainRateLimiter:
    """Per-domain rate limiter using one token bucket per host.

    Caps the request rate per host on top of the detail-fetch concurrency
    ceiling.
    """

    # Requests per minute for known storefront hosts
    DOMAIN_LIMITS_RPM = {
        "www.amazon.com": 60,
        "www.costco.com": 30,
        "www.walmart.com": 30,
    }

    def __init__(self, default_rpm: Optional[int] = None):
        self.default_rpm = default_rpm or settings.DEFAULT_RPM
        self._buckets: Dict[str, TokenBucket] = {}

    def _get_bucket(self, domain: str) -> TokenBucket:
        if domain not in self._buckets:
            rpm = self.DOMAIN_LIMITS_RPM.get(domain, self.default_rpm)
            self._buckets[domain] = TokenBucket(domain, rpm)
        return self._buckets[domain]

    async def acquire(self, domain: str, tokens: float = 1.0) -> None:
        """Block until the domain's budget allows another request."""
        await self._get_bucket(domain).acquire(tokens)

    def set_custom_limit(self, domain: str, rpm: int) -> None:
        """Replace the limit for a domain.

        Args:
            domain: Host name
            rpm: Requests per minute limit
        """
        self._buckets[domain] = TokenBucket(domain, rpm)

    def get_current_rate(self, domain: str) -> float:
        """Current limit for a domain in requests per minute."""
        return self._get_bucket(domain).rate * 60.0

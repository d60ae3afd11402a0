"""Factory for creating and managing storefront provider instances."""

from typing import Dict, Mapping, Optional, Type

import httpx
import structlog

from ordersync.core.exceptions import ProviderNotFoundError
from ordersync.scrapers.base import BaseProvider, DiagnosticSink, SyncContext
from ordersync.scrapers.fetcher import DocumentFetcher, build_client
from ordersync.scrapers.utils.rate_limiter import DomainRateLimiter


logger = structlog.get_logger(__name__)


class ProviderFactory:
    """Registry of provider classes and builder of their sync contexts.

    Contexts built here share one rate limiter, so every provider created
    through the same factory draws on the same per-domain budget.
    """

    def __init__(self):
        self.rate_limiter = DomainRateLimiter()
        self._provider_registry: Dict[str, Type[BaseProvider]] = {}

    def register_provider(self, slug: str, provider_class: Type[BaseProvider]) -> None:
        """Register a provider class under a slug.

        Args:
            slug: Provider identifier (e.g., "amazon")
            provider_class: Class inheriting from BaseProvider
        """
        if not issubclass(provider_class, BaseProvider):
            raise ValueError(f"Provider class must inherit from BaseProvider: {provider_class}")

        self._provider_registry[slug] = provider_class
        logger.info("provider_registered", slug=slug, provider=provider_class.__name__)

    def build_context(
        self,
        cookies: Optional[Mapping[str, str]] = None,
        debug_log: Optional[DiagnosticSink] = None,
        client: Optional[httpx.AsyncClient] = None,
        max_concurrency: Optional[int] = None,
    ) -> SyncContext:
        """Build a SyncContext around an authenticated client.

        Args:
            cookies: Browser session cookies, used when no client is given
            debug_log: Diagnostic sink; structlog-backed by default
            client: Pre-configured client (takes precedence over cookies)
            max_concurrency: Detail-fetch ceiling; settings value by default
        """
        fetcher = DocumentFetcher(client or build_client(cookies), rate_limiter=self.rate_limiter)
        kwargs = {}
        if debug_log is not None:
            kwargs["debug_log"] = debug_log
        if max_concurrency is not None:
            kwargs["max_concurrency"] = max_concurrency
        return SyncContext(fetcher=fetcher, **kwargs)

    def create_provider(self, slug: str, context: SyncContext) -> BaseProvider:
        """Create a provider bound to context.

        Raises:
            ProviderNotFoundError: If slug is not registered
        """
        provider_class = self._provider_registry.get(slug)
        if not provider_class:
            logger.warning("provider_not_found", slug=slug)
            raise ProviderNotFoundError(slug)

        provider = provider_class(context)
        logger.debug("provider_created", slug=slug)
        return provider

    def get_registered_providers(self) -> list[str]:
        return list(self._provider_registry.keys())

    def has_provider(self, slug: str) -> bool:
        return slug in self._provider_registry


# Global factory instance
provider_factory = ProviderFactory()


def get_provider_factory() -> ProviderFactory:
    return provider_factory

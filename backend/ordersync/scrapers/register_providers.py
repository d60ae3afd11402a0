"""Register the built-in storefront providers with the factory."""

from typing import Optional

import structlog

from ordersync.scrapers.adapters import AmazonProvider, CostcoProvider, WalmartProvider
from ordersync.scrapers.factory import ProviderFactory, get_provider_factory

logger = structlog.get_logger(__name__)


def register_all_providers(factory: Optional[ProviderFactory] = None) -> ProviderFactory:
    """Register Amazon, Costco and Walmart.

    Args:
        factory: Factory to populate; the global one by default

    Returns:
        The populated factory
    """
    factory = factory or get_provider_factory()

    providers = [
        ("amazon", AmazonProvider),
        ("costco", CostcoProvider),
        ("walmart", WalmartProvider),
    ]

    for slug, provider_class in providers:
        factory.register_provider(slug, provider_class)

    logger.info("providers_registered", count=len(providers))
    return factory

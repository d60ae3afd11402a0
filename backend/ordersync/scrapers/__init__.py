"""Order-history scraping pipeline.

This package provides:
- The provider contract and base class for storefront providers
- The document fetcher, pagination driver and bounded executor
- The sync orchestrator tying them together
- Factory for creating providers bound to a sync context
"""

from .base import (
    BaseProvider,
    ListingPage,
    OrderProvider,
    SyncContext,
)
from .executor import BoundedExecutor
from .factory import ProviderFactory, get_provider_factory, provider_factory
from .fetcher import DocumentFetcher, build_client
from .orchestrator import SyncOrchestrator
from .pagination import PaginationDriver

__all__ = [
    # Contract
    "BaseProvider",
    "OrderProvider",
    "ListingPage",
    "SyncContext",
    # Pipeline
    "DocumentFetcher",
    "build_client",
    "PaginationDriver",
    "BoundedExecutor",
    "SyncOrchestrator",
    # Factory
    "ProviderFactory",
    "provider_factory",
    "get_provider_factory",
]

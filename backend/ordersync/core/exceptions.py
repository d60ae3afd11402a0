"""Custom exception classes for order synchronization."""

from typing import Optional


class OrderSyncException(Exception):
    """Base exception for all ordersync errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class FetchError(OrderSyncException):
    """Raised when a storefront page cannot be retrieved."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {message}")


class ListingError(OrderSyncException):
    """Raised when order-history discovery fails for a provider."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"Listing error for {provider}: {message}")


class ProviderNotFoundError(OrderSyncException):
    """Raised when a provider slug is not registered."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Provider with identifier '{slug}' not found")

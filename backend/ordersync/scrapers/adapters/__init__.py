"""Storefront provider implementations.

Each module implements a class inheriting from BaseProvider.
"""

from .amazon import AmazonProvider
from .costco import CostcoProvider
from .walmart import WalmartProvider

__all__ = [
    "AmazonProvider",
    "CostcoProvider",
    "WalmartProvider",
]

"""Order history synchronization for Amazon, Costco and Walmart accounts."""

__version__ = "0.1.0"

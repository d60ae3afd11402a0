"""Scraper utilities for rate limiting, retries and text normalization."""

from .rate_limiter import DomainRateLimiter, TokenBucket
from .normalizer import (
    PriceNormalizer,
    earliest_year,
    extract_date,
    extract_year_options,
    parse_int,
)
from .retry import http_retrying, is_retryable


__all__ = [
    # Rate limiting
    "DomainRateLimiter",
    "TokenBucket",
    # Normalization
    "PriceNormalizer",
    "earliest_year",
    "extract_date",
    "extract_year_options",
    "parse_int",
    # Retry
    "http_retrying",
    "is_retryable",
]

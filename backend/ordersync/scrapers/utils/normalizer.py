"""Normalization helpers for money, dates and year filters in storefront markup."""

import re
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Pattern, Union

from bs4 import BeautifulSoup

NAN = Decimal("NaN")

# Month DD, YYYY (e.g. "March 03, 2023" or "March 3, 2023")
DATE_FRAGMENT = r"[A-Z][a-z]+ \d{1,2}, \d{4}"

_YEAR_RE = re.compile(r"(?<!\d)(\d{4})(?!\d)")


class PriceNormalizer:
    """Parsing of localized currency text into Decimal amounts.

    Handles formats such as:
    - "$1,234.56" -> 1234.56
    - "-$12.00"  -> -12.00 (or 12.00 with absolute=True)
    - " USD 9.99 " -> 9.99
    """

    @staticmethod
    def parse_money(raw: Optional[str], absolute: bool = False) -> Decimal:
        """Strip everything except digits, the decimal point and sign.

        Args:
            raw: Currency text as rendered on the page
            absolute: Drop the sign and return the magnitude

        Returns:
            Decimal amount, or Decimal("NaN") if nothing parseable remains
        """
        if not raw:
            return NAN

        strip = r"[^0-9.]" if absolute else r"[^0-9.\-]"
        cleaned = re.sub(strip, "", raw)

        if not cleaned:
            return NAN

        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return NAN

    @classmethod
    def parse_money_or_zero(cls, raw: Optional[str], absolute: bool = False) -> Decimal:
        """Like parse_money, but missing text counts as zero."""
        if not raw or not raw.strip():
            return Decimal("0")
        return cls.parse_money(raw, absolute=absolute)

    @staticmethod
    def is_amount(value: Decimal) -> bool:
        """True for a real, non-zero amount."""
        return not value.is_nan() and value != 0


def extract_date(text: str, pattern: Union[str, Pattern[str]]) -> str:
    """Return the first capture group of pattern in text, or "".

    Args:
        text: Free text containing a date fragment
        pattern: Regex with the date in group 1
    """
    if not text:
        return ""
    match = re.search(pattern, text)
    return match.group(1) if match else ""


def extract_year_options(
    soup: BeautifulSoup, selector: str, value_marker: Optional[str] = None
) -> List[int]:
    """Collect year values from the options of a year-filter control.

    Args:
        soup: Parsed order-history page
        selector: CSS selector for the option elements
        value_marker: Substring an option value must contain to count
            (e.g. "year" for values like "year-2021")

    Returns:
        Years found, in document order
    """
    years: List[int] = []
    for option in soup.select(selector):
        value = (option.get("value") or "").strip()
        if value_marker and value_marker not in value:
            continue
        match = _YEAR_RE.search(value)
        if match:
            years.append(int(match.group(1)))
    return years


def earliest_year(years: Iterable[int]) -> Optional[int]:
    years = list(years)
    return min(years) if years else None


def parse_int(text: str) -> Optional[int]:
    text = (text or "").strip()
    return int(text) if text.isdecimal() else None

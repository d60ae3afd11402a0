"""Costco order-history provider.

Covers costco.com online orders and in-warehouse receipts.

Structure:
  - Orders page: div.order-tile
      - a[href*="orderNumber="] (warehouse=true for in-warehouse purchases)
      - .order-date ("Ordered on March 03, 2023")
  - Result summary: .results-summary ("Showing 1-10 of 37 orders")
  - Year filter: select#order-year-filter > option[value="YYYY"]
  - Order details:
      - .item-group (.item-group-status "Returned" / "Refunded")
          - .order-item (.item-name, .item-price)
      - .payment-summary (.payment-heading, .payment-date, .payment-total)
"""

import math
import re
from typing import List, Optional
from urllib.parse import quote, unquote

import structlog
from bs4 import BeautifulSoup, Tag

from ordersync.models import AuthResult, AuthStatus, Item, Order, OrderTransaction
from ordersync.scrapers.base import BaseProvider, ItemAllocator, add_query
from ordersync.scrapers.utils.normalizer import (
    DATE_FRAGMENT,
    PriceNormalizer,
    earliest_year,
    extract_date,
    extract_year_options,
)


logger = structlog.get_logger(__name__)

_ORDER_NUMBER_RE = re.compile(r"orderNumber=([^&#]+)")
_ORDERED_ON_RE = re.compile(rf"Ordered on ({DATE_FRAGMENT})")
_PAYMENT_DATE_RE = re.compile(rf"({DATE_FRAGMENT})")
_RESULT_COUNT_RE = re.compile(r"of\s+([\d,]+)\s+orders?", re.IGNORECASE)

_REFUNDED_GROUP_MARKERS = ("Returned", "Refunded")


class CostcoProvider(BaseProvider):
    """Costco.com order history provider."""

    slug = "costco"
    name = "Costco"

    ORDER_PAGES_URL = "https://www.costco.com/OrderStatusCmd"
    ORDER_DETAILS_URL = "https://www.costco.com/OrderDetailsCmd?orderNumber={orderID}&warehouse={storePurchase}"

    def listing_url(self, year: Optional[int], page: int) -> str:
        params = {}
        if year:
            params["year"] = year
        if page > 1:
            params["startIndex"] = self.page_offset(page)
        return add_query(self.ORDER_PAGES_URL, params)

    def detail_url(self, order: Order) -> str:
        return self.ORDER_DETAILS_URL.format(
            orderID=quote(order.id, safe="-"),
            storePurchase="true" if order.flags.get("store_purchase") else "false",
        )

    def parse_auth(self, soup: BeautifulSoup) -> AuthResult:
        if soup.select('h1:-soup-contains("Sign In")'):
            return AuthResult(status=AuthStatus.NOT_LOGGED_IN)

        years = extract_year_options(soup, "#order-year-filter option")
        return AuthResult(status=AuthStatus.SUCCESS, starting_year=earliest_year(years))

    def parse_page_count(self, soup: BeautifulSoup) -> int:
        summary = soup.select_one(".results-summary")
        match = _RESULT_COUNT_RE.search(summary.get_text(" ", strip=True)) if summary else None
        if not match:
            return 1
        total_orders = int(match.group(1).replace(",", ""))
        return max(1, math.ceil(total_orders / self.PAGE_SIZE))

    def parse_listing(self, soup: BeautifulSoup) -> List[Order]:
        orders: List[Order] = []

        for tile in soup.select(".order-tile"):
            try:
                link = tile.select_one('a[href*="orderNumber="]')
                href = link.get("href", "") if link else ""
                match = _ORDER_NUMBER_RE.search(href)
                if not match:
                    logger.info("order_tile_without_id")
                    continue

                date_elem = tile.select_one(".order-date")
                orders.append(
                    Order(
                        id=unquote(match.group(1)),
                        date=extract_date(date_elem.get_text(" ", strip=True) if date_elem else "", _ORDERED_ON_RE),
                        flags={"store_purchase": "warehouse=true" in href},
                    )
                )
            except Exception as e:
                logger.warning("order_tile_parse_failed", error=str(e))

        return orders

    def parse_transactions(self, soup: BeautifulSoup, order: Order) -> List[OrderTransaction]:
        allocator = ItemAllocator(self._parse_items(soup, order))

        transactions: List[OrderTransaction] = []
        for block in soup.select(".payment-summary"):
            heading = block.select_one(".payment-heading")
            refund = heading is not None and "Refund" in heading.get_text()

            date_elem = block.select_one(".payment-date")
            total_elem = block.select_one(".payment-total")

            transactions.append(
                OrderTransaction(
                    id=order.id,
                    date=extract_date(date_elem.get_text(" ", strip=True) if date_elem else "", _PAYMENT_DATE_RE),
                    amount=PriceNormalizer.parse_money_or_zero(
                        total_elem.get_text(strip=True) if total_elem else "", absolute=True
                    ),
                    refund=refund,
                    items=allocator.take(refund),
                )
            )

        return transactions

    @staticmethod
    def _parse_items(soup: BeautifulSoup, order: Order) -> List[Item]:
        items: List[Item] = []
        for elem in soup.select(".order-item"):
            name = elem.select_one(".item-name")
            title = name.get_text(strip=True) if name else ""
            if not title:
                continue

            price = elem.select_one(".item-price")
            items.append(
                Item(
                    order_id=order.id,
                    title=title,
                    price=PriceNormalizer.parse_money_or_zero(price.get_text(strip=True) if price else ""),
                    refunded=CostcoProvider._in_refunded_group(elem),
                )
            )
        return items

    @staticmethod
    def _in_refunded_group(elem: Tag) -> bool:
        group = elem.find_parent(class_="item-group")
        status = group.select_one(".item-group-status") if group else None
        text = status.get_text(" ", strip=True) if status else ""
        return any(marker in text for marker in _REFUNDED_GROUP_MARKERS)

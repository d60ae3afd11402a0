"""Walmart order-history provider.

Structure:
  - Orders page: [data-testid^="orderGroup-"]
      - a[link-identifier="Start a return"] (href /orders/{id}/...; orderSource=STORE for in-store)
      - h3 ("Mar 03, 2023 purchase")
  - Order details:
      - [data-testid="itemtile-stack"] ([data-testid="productName"], .column3 .f5.b.black.tr)
      - [data-testid^="category-accordion"] [data-testid="category-label"] ("Refunded")
      - print bill: h1.print-bill-date, .bill-order-total-payment h2
"""

import re
from typing import List, Optional
from urllib.parse import quote

import structlog
from bs4 import BeautifulSoup, Tag

from ordersync.models import AuthResult, AuthStatus, Item, Order, OrderTransaction
from ordersync.scrapers.base import BaseProvider, add_query
from ordersync.scrapers.utils.normalizer import (
    PriceNormalizer,
    earliest_year,
    extract_date,
    extract_year_options,
)


logger = structlog.get_logger(__name__)

_ORDER_ID_RE = re.compile(r"orders/([^/?#]+)/")
_LISTING_DATE_RE = re.compile(r"(\w+ \d{1,2}, \d{4}) purchase")
_BILL_DATE_RE = re.compile(r"(\w+ \d{1,2}, \d{4}) (?:order|purchase)")
_ACCORDION_RE = re.compile(r"^category-accordion")

_TRANSACTION_BLOCKS = '[data-testid^="orderGroup-"], .print-bill-body'


class WalmartProvider(BaseProvider):
    """Walmart.com order history provider (online and in-store purchases)."""

    slug = "walmart"
    name = "Walmart"

    ORDER_PAGES_URL = "https://www.walmart.com/orders"
    ORDER_DETAILS_URL = "https://www.walmart.com/orders/{orderID}?storePurchase={storePurchase}"

    def listing_url(self, year: Optional[int], page: int) -> str:
        params = {}
        if page > 1:
            params["startIndex"] = self.page_offset(page)
        if year:
            params["timeFilter"] = f"year-{year}"
        return add_query(self.ORDER_PAGES_URL, params)

    def detail_url(self, order: Order) -> str:
        return self.ORDER_DETAILS_URL.format(
            orderID=quote(order.id, safe="-"),
            storePurchase="true" if order.flags.get("store_purchase") else "false",
        )

    def parse_auth(self, soup: BeautifulSoup) -> AuthResult:
        if soup.select('.mw3:-soup-contains("Sign In")'):
            return AuthResult(status=AuthStatus.NOT_LOGGED_IN)

        years = extract_year_options(soup, "#time-filter option", value_marker="year")
        return AuthResult(status=AuthStatus.SUCCESS, starting_year=earliest_year(years))

    def parse_page_count(self, soup: BeautifulSoup) -> int:
        # The orders page is read one year at a time; no pagination control is followed.
        return 1

    def parse_listing(self, soup: BeautifulSoup) -> List[Order]:
        orders: List[Order] = []

        for group in soup.select('[data-testid^="orderGroup-"]'):
            try:
                link = group.select_one('a[link-identifier="Start a return"]')
                href = link.get("href", "") if link else ""
                match = _ORDER_ID_RE.search(href)
                if not match:
                    logger.info("order_group_without_id", testid=group.get("data-testid"))
                    continue

                heading = group.select_one("h3")
                orders.append(
                    Order(
                        id=match.group(1),
                        date=extract_date(heading.get_text(strip=True) if heading else "", _LISTING_DATE_RE),
                        flags={"store_purchase": "orderSource=STORE" in href},
                    )
                )
            except Exception as e:
                logger.warning("order_group_parse_failed", error=str(e))

        return orders

    def parse_transactions(self, soup: BeautifulSoup, order: Order) -> List[OrderTransaction]:
        blocks = soup.select(_TRANSACTION_BLOCKS)
        selected = {id(block) for block in blocks}

        transactions: List[OrderTransaction] = []
        for block in blocks:
            # A bill wrapping an order group would otherwise be counted twice
            if any(id(parent) in selected for parent in block.parents):
                continue

            date_elem = block.select_one("h1.print-bill-date")
            totals = block.select(".bill-order-total-payment h2")
            labels = " ".join(
                label.get_text(" ", strip=True)
                for label in block.select('[data-testid="category-label"]')
            )
            refund = "Refunded" in labels
            # Each block owns the item tiles rendered inside it
            items = [item for item in self._parse_items(block, order) if item.refunded == refund]

            transactions.append(
                OrderTransaction(
                    id=order.id,
                    date=extract_date(date_elem.get_text(strip=True) if date_elem else "", _BILL_DATE_RE),
                    amount=PriceNormalizer.parse_money_or_zero(totals[-1].get_text(strip=True) if totals else ""),
                    refund=refund,
                    items=items,
                )
            )

        return transactions

    @staticmethod
    def _parse_items(root: Tag, order: Order) -> List[Item]:
        items: List[Item] = []
        for tile in root.select('[data-testid="itemtile-stack"]'):
            title_elem = tile.select_one('[data-testid="productName"]')
            title = title_elem.get_text(strip=True) if title_elem else ""
            if not title:
                continue

            price_elem = tile.select_one(".column3 .f5.b.black.tr")
            items.append(
                Item(
                    order_id=order.id,
                    title=title,
                    price=PriceNormalizer.parse_money_or_zero(price_elem.get_text(strip=True) if price_elem else ""),
                    refunded=WalmartProvider._is_refunded(tile),
                )
            )
        return items

    @staticmethod
    def _is_refunded(tile: Tag) -> bool:
        accordion = tile.find_parent(attrs={"data-testid": _ACCORDION_RE})
        if accordion is None:
            return False
        return any(
            "Refunded" in label.get_text()
            for label in accordion.select('[data-testid="category-label"]')
        )

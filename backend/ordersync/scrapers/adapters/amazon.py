"""Amazon order-history provider.

Scrapes the no-JS order history and order detail pages.

Structure:
  - Order history: div.js-order-card
      - a[href*="orderID="] (order id in the query string)
      - .order-info .value (first one is the order date)
  - Pagination: ul.a-pagination > li (page numbers)
  - Year filter: select#time-filter > option[value="year-YYYY"]
  - Order details:
      - .yohtmlc-item (.a-link-normal title, .a-color-price price)
      - #od-subtotals (gift card row)
      - .a-expander-inline-content .a-row ("Items shipped" / "Refund: Completed")
"""

import re
from decimal import Decimal
from typing import List, Optional, Tuple
from urllib.parse import quote, unquote

import structlog
from bs4 import BeautifulSoup, Tag

from ordersync.models import AuthResult, AuthStatus, Item, Order, OrderTransaction
from ordersync.scrapers.base import BaseProvider, ItemAllocator, add_query
from ordersync.scrapers.utils.normalizer import (
    NAN,
    PriceNormalizer,
    earliest_year,
    extract_year_options,
    parse_int,
)


logger = structlog.get_logger(__name__)

_ORDER_ID_RE = re.compile(r"orderID=([^&#]+)")

_REFUNDED_SHIPMENT_MARKERS = ("Refunded", "Return complete")


class AmazonProvider(BaseProvider):
    """Amazon.com order history provider."""

    slug = "amazon"
    name = "Amazon"

    ORDER_PAGES_URL = "https://www.amazon.com/gp/css/order-history?disableCsd=no-js"
    ORDER_DETAILS_URL = "https://www.amazon.com/gp/your-account/order-details"

    def listing_url(self, year: Optional[int], page: int) -> str:
        params = {}
        if page > 1:
            params["startIndex"] = self.page_offset(page)
        if year:
            params["timeFilter"] = f"year-{year}"
        return add_query(self.ORDER_PAGES_URL, params)

    def detail_url(self, order: Order) -> str:
        return f"{self.ORDER_DETAILS_URL}?orderID={quote(order.id, safe='-')}"

    def parse_auth(self, soup: BeautifulSoup) -> AuthResult:
        if soup.select('h1:-soup-contains("Sign in")'):
            return AuthResult(status=AuthStatus.NOT_LOGGED_IN)

        years = extract_year_options(soup, "#time-filter option", value_marker="year")
        return AuthResult(status=AuthStatus.SUCCESS, starting_year=earliest_year(years))

    def parse_page_count(self, soup: BeautifulSoup) -> int:
        # Largest page number shown in the pagination control
        end_page = 1
        for li in soup.select(".a-pagination li"):
            page = parse_int(li.get_text())
            if page and page > end_page:
                end_page = page
        return end_page

    def parse_listing(self, soup: BeautifulSoup) -> List[Order]:
        orders: List[Order] = []
        for card in soup.select(".js-order-card"):
            try:
                link = card.select_one('a[href*="orderID="]')
                match = _ORDER_ID_RE.search(link.get("href", "")) if link else None
                if not match:
                    logger.info("order_card_without_id")
                    continue

                date_elem = card.select_one(".order-info .value")
                orders.append(
                    Order(
                        id=unquote(match.group(1)),
                        date=date_elem.get_text(strip=True) if date_elem else "",
                    )
                )
            except Exception as e:
                logger.warning("order_card_parse_failed", error=str(e))
        return orders

    def parse_transactions(self, soup: BeautifulSoup, order: Order) -> List[OrderTransaction]:
        allocator = ItemAllocator(self._parse_items(soup, order))

        transactions: List[OrderTransaction] = []

        gift_card = soup.select_one('#od-subtotals .a-column:-soup-contains("Gift Card") + .a-column')
        gift_card_amount = PriceNormalizer.parse_money(
            gift_card.get_text() if gift_card else "", absolute=True
        )
        if PriceNormalizer.is_amount(gift_card_amount):
            transactions.append(
                OrderTransaction(
                    id=order.id,
                    date=order.date,
                    amount=gift_card_amount,
                    refund=False,
                    items=allocator.take(refund=False),
                )
            )

        details = soup.select_one(".a-expander-inline-content")
        if not details:
            return transactions

        for row in details.select(".a-row"):
            if row.select_one(".a-row"):
                continue  # container row; its children are visited on their own
            line = row.get_text(" ", strip=True).replace("\n", "")

            if "Items shipped" in line:
                date, amount = self._date_and_amount(line.split("shipped:", 1)[-1])
                transactions.append(
                    OrderTransaction(id=order.id, date=date, amount=amount, refund=False, items=allocator.take(refund=False))
                )
            elif "Refund: Completed" in line:
                date, amount = self._date_and_amount(line.split(": Completed", 1)[-1])
                transactions.append(
                    OrderTransaction(id=order.id, date=date, amount=amount, refund=True, items=allocator.take(refund=True))
                )

        return transactions

    @staticmethod
    def _parse_items(soup: BeautifulSoup, order: Order) -> List[Item]:
        items: List[Item] = []
        for elem in soup.select(".yohtmlc-item"):
            title_elem = elem.select_one(".a-link-normal")
            title = title_elem.get_text(strip=True) if title_elem else ""
            if not title:
                continue

            price_elem = elem.select_one(".a-color-price")
            items.append(
                Item(
                    order_id=order.id,
                    title=title,
                    price=PriceNormalizer.parse_money(
                        price_elem.get_text() if price_elem else "", absolute=True
                    ),
                    refunded=AmazonProvider._in_refunded_shipment(elem),
                )
            )
        return items

    @staticmethod
    def _in_refunded_shipment(elem: Tag) -> bool:
        shipment = elem.find_parent(class_="shipment")
        if shipment is None:
            return False
        status = shipment.select_one(".shipment-top-row")
        text = status.get_text(" ", strip=True) if status else ""
        return any(marker in text for marker in _REFUNDED_SHIPMENT_MARKERS)

    @staticmethod
    def _date_and_amount(text: str) -> Tuple[str, Decimal]:
        """Split "March 3, 2023 - Visa ending in 1234: $45.67" into date and amount."""
        head, sep, tail = text.partition("-")
        date = head.strip()
        if not sep or "$" not in tail:
            return date, NAN
        return date, PriceNormalizer.parse_money(tail.rsplit("$", 1)[-1], absolute=True)

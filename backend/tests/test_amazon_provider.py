"""Tests for the Amazon provider's URLs and extraction heuristics."""

from decimal import Decimal

import pytest
from bs4 import BeautifulSoup

from ordersync.models import AuthStatus, Order
from ordersync.scrapers.adapters.amazon import AmazonProvider
from tests import pages


def soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


@pytest.fixture
def amazon(context) -> AmazonProvider:
    return AmazonProvider(context)


# ============================================================================
# URLS
# ============================================================================

class TestAmazonUrls:
    """Tests for listing and detail URL templates."""

    def test_first_page_has_no_offset(self, amazon):
        assert amazon.listing_url(None, 1) == amazon.ORDER_PAGES_URL

    def test_later_pages_use_ten_record_offset(self, amazon):
        url = amazon.listing_url(2022, 3)
        assert "startIndex=20" in url
        assert "timeFilter=year-2022" in url
        assert "disableCsd=no-js" in url

    def test_detail_url(self, amazon):
        url = amazon.detail_url(Order(id="111-2222222-3333333"))
        assert url == "https://www.amazon.com/gp/your-account/order-details?orderID=111-2222222-3333333"


# ============================================================================
# AUTH
# ============================================================================

class TestAmazonAuth:
    """Tests for sign-in detection and the year filter."""

    def test_sign_in_heading_means_not_logged_in(self, amazon):
        result = amazon.parse_auth(soup(pages.amazon_signin_page()))
        assert result.status == AuthStatus.NOT_LOGGED_IN
        assert result.starting_year is None

    def test_sign_in_wins_over_year_filter(self, amazon):
        html = pages.amazon_history_page(years=[2020, 2021], extra="<h1>Sign in</h1>")
        assert amazon.parse_auth(soup(html)).status == AuthStatus.NOT_LOGGED_IN

    def test_starting_year_is_minimum_option(self, amazon):
        result = amazon.parse_auth(soup(pages.amazon_history_page(years=[2023, 2015, 2019])))
        assert result.status == AuthStatus.SUCCESS
        assert result.starting_year == 2015

    def test_no_year_options(self, amazon):
        result = amazon.parse_auth(soup(pages.amazon_history_page()))
        assert result.status == AuthStatus.SUCCESS
        assert result.starting_year is None


# ============================================================================
# LISTING
# ============================================================================

class TestAmazonListing:
    """Tests for order cards and pagination."""

    def test_extracts_every_card(self, amazon):
        ids = [f"111-0000000-00000{n:02d}" for n in range(10)]
        orders = amazon.parse_listing(soup(pages.amazon_orders_page(ids)))

        assert [o.id for o in orders] == ids
        assert all(o.date == "March 3, 2023" for o in orders)

    def test_skips_cards_without_order_id(self, amazon):
        html = pages.amazon_orders_page(["111-1", None, "111-3"])
        orders = amazon.parse_listing(soup(html))
        assert [o.id for o in orders] == ["111-1", "111-3"]

    def test_card_without_date_gets_empty_date(self, amazon):
        html = (
            '<div class="js-order-card">'
            '<a href="/gp/your-account/order-details?orderID=111-9">Details</a></div>'
        )
        orders = amazon.parse_listing(soup(html))
        assert orders[0].date == ""

    def test_page_count_from_pagination(self, amazon):
        assert amazon.parse_page_count(soup(pages.amazon_orders_page(["1"], pages=4))) == 4

    def test_page_count_without_pagination(self, amazon):
        assert amazon.parse_page_count(soup(pages.amazon_orders_page(["1"]))) == 1


# ============================================================================
# DETAILS
# ============================================================================

class TestAmazonDetails:
    """Tests for item and transaction extraction."""

    def test_shipment_transaction(self, amazon):
        order = Order(id="111-1", date="March 3, 2023")
        html = pages.amazon_detail_page(
            items=[("USB-C Cable", "$9.99", False), ("Desk Lamp", "$35.68", False)],
            shipped=[("March 4, 2023", "$45.67")],
        )
        transactions = amazon.parse_transactions(soup(html), order)

        assert len(transactions) == 1
        tx = transactions[0]
        assert tx.id == "111-1"
        assert tx.date == "March 4, 2023"
        assert tx.amount == Decimal("45.67")
        assert tx.refund is False
        assert [i.title for i in tx.items] == ["USB-C Cable", "Desk Lamp"]
        assert tx.items[0].price == Decimal("9.99")

    def test_refund_gets_refunded_items_only(self, amazon):
        order = Order(id="111-2", date="March 3, 2023")
        html = pages.amazon_detail_page(
            items=[("Mouse", "$20.00", False), ("Keyboard", "$40.00", False), ("Monitor", "$150.00", True)],
            shipped=[("March 4, 2023", "$210.00")],
            refunds=[("March 20, 2023", "$150.00")],
        )
        shipment, refund = amazon.parse_transactions(soup(html), order)

        assert [i.title for i in shipment.items] == ["Mouse", "Keyboard"]
        assert refund.refund is True
        assert refund.date == "March 20, 2023"
        assert refund.amount == Decimal("150.00")
        assert [i.title for i in refund.items] == ["Monitor"]
        assert refund.items[0].refunded is True

    def test_split_shipments_do_not_repeat_items(self, amazon):
        html = pages.amazon_detail_page(
            items=[("Mouse", "$20.00", False), ("Keyboard", "$40.00", False)],
            shipped=[("March 4, 2023", "$20.00"), ("March 6, 2023", "$40.00")],
        )
        first, second = amazon.parse_transactions(soup(html), Order(id="111-8"))

        assert first.amount == Decimal("20.00")
        assert second.amount == Decimal("40.00")
        assert [i.title for i in first.items] == ["Mouse", "Keyboard"]
        assert second.items == []

    def test_gift_card_and_shipment_share_items_once(self, amazon):
        html = pages.amazon_detail_page(
            items=[("Book", "$22.00", False), ("Monitor", "$150.00", True)],
            shipped=[("March 4, 2023", "$12.00")],
            refunds=[("March 9, 2023", "$75.00"), ("March 20, 2023", "$75.00")],
            gift_card="-$10.00",
        )
        transactions = amazon.parse_transactions(soup(html), Order(id="111-9", date="March 3, 2023"))

        for refund in (False, True):
            titles = [i.title for tx in transactions if tx.refund is refund for i in tx.items]
            assert len(titles) == len(set(titles))

        gift_card, shipment, first_refund, second_refund = transactions
        assert [i.title for i in gift_card.items] == ["Book"]
        assert shipment.items == []
        assert [i.title for i in first_refund.items] == ["Monitor"]
        assert second_refund.items == []

    def test_gift_card_transaction_uses_order_date(self, amazon):
        order = Order(id="111-3", date="March 3, 2023")
        html = pages.amazon_detail_page(
            items=[("Book", "$12.00", False)],
            gift_card="-$12.00",
        )
        transactions = amazon.parse_transactions(soup(html), order)

        assert len(transactions) == 1
        assert transactions[0].date == "March 3, 2023"
        assert transactions[0].amount == Decimal("12.00")

    def test_zero_gift_card_is_ignored(self, amazon):
        html = pages.amazon_detail_page(items=[("Book", "$12.00", False)], gift_card="$0.00")
        assert amazon.parse_transactions(soup(html), Order(id="111-4")) == []

    def test_malformed_amount_does_not_raise(self, amazon):
        html = pages.amazon_detail_page(
            items=[("Book", "price unavailable", False)],
            shipped=[("March 4, 2023", "pending")],
        )
        transactions = amazon.parse_transactions(soup(html), Order(id="111-5"))

        assert len(transactions) == 1
        assert transactions[0].amount.is_nan()
        assert transactions[0].items[0].price.is_nan()

    def test_items_without_title_are_dropped(self, amazon):
        html = pages.amazon_detail_page(
            items=[("", "$1.00", False), ("Pen", "$2.00", False)],
            shipped=[("March 4, 2023", "$2.00")],
        )
        (tx,) = amazon.parse_transactions(soup(html), Order(id="111-6"))
        assert [i.title for i in tx.items] == ["Pen"]

    def test_empty_page_has_no_transactions(self, amazon):
        assert amazon.parse_transactions(soup("<html></html>"), Order(id="111-7")) == []

"""Order data structures shared by every provider.

These are the wire contract between the sync pipeline and any storage or
export collaborator. Nothing here is persisted by the pipeline itself.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from ordersync.config import settings


class AuthStatus(str, Enum):
    """Outcome of probing a provider for an authenticated session."""

    SUCCESS = "success"
    NOT_LOGGED_IN = "not_logged_in"
    FAILURE = "failure"
    PENDING = "pending"


class ProgressPhase(str, Enum):
    """Sync phase reported to progress observers."""

    IDLE = "idle"
    AMAZON_PAGE_SCAN = "amazon_page_scan"
    AMAZON_ORDER_DOWNLOAD = "amazon_order_download"
    COSTCO_PAGE_SCAN = "costco_page_scan"
    COSTCO_ORDER_DOWNLOAD = "costco_order_download"
    WALMART_PAGE_SCAN = "walmart_page_scan"
    WALMART_ORDER_DOWNLOAD = "walmart_order_download"
    COMPLETE = "complete"

    @classmethod
    def page_scan(cls, provider_slug: str) -> "ProgressPhase":
        return cls(f"{provider_slug}_page_scan")

    @classmethod
    def order_download(cls, provider_slug: str) -> "ProgressPhase":
        return cls(f"{provider_slug}_order_download")


@dataclass(frozen=True)
class ProgressState:
    """Snapshot of sync progress handed to the progress callback."""

    phase: ProgressPhase
    total: int = 0
    complete: int = 0


@dataclass(frozen=True)
class Item:
    """One line item parsed from an order detail page."""

    order_id: str
    title: str
    price: Decimal
    refunded: bool = False

    def __post_init__(self):
        if not self.title:
            raise ValueError("title is required")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "price": str(self.price),
            "refunded": self.refunded,
        }


@dataclass
class OrderTransaction:
    """A single financial event on an order: shipment, gift card or refund."""

    id: str  # Order identifier the event belongs to
    date: str
    amount: Decimal
    refund: bool = False
    items: List[Item] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "amount": str(self.amount),
            "refund": self.refund,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class Order:
    """An order as discovered on a listing page.

    `transactions` stays None until the detail page has been parsed.
    """

    id: str
    date: str = ""
    flags: Dict[str, Any] = field(default_factory=dict)
    transactions: Optional[List[OrderTransaction]] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("id is required")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "date": self.date}
        if self.flags:
            data["flags"] = dict(self.flags)
        if self.transactions is not None:
            data["transactions"] = [tx.to_dict() for tx in self.transactions]
        return data


@dataclass
class AuthResult:
    """Result of an auth probe.

    `starting_year` is only meaningful when status is SUCCESS.
    """

    status: AuthStatus
    starting_year: Optional[int] = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return self.status == AuthStatus.SUCCESS

    def is_fresh(self, max_age: Optional[timedelta] = None) -> bool:
        """True if this was a successful probe taken within max_age.

        max_age defaults to AUTH_FRESHNESS_HOURS.
        """
        if not self.ok:
            return False
        if max_age is None:
            max_age = timedelta(hours=settings.AUTH_FRESHNESS_HOURS)
        return datetime.now(timezone.utc) - self.checked_at < max_age


@dataclass
class TaskOutcome:
    """Result of one detail-fetch task: an enriched order or the error."""

    order: Order
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SyncResult:
    """Result of syncing one provider."""

    provider: str
    auth: AuthResult
    orders: List[Order] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.auth.ok and self.error is None

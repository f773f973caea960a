"""
Applies subscription operations to a user's document.

Upserts rebuild the whole subscription record from Stripe and replace the
stored one; removals delete it. Both are keyed only by user id, so
redelivering an event converges to the same record (``updatedAt`` aside)
and concurrent deliveries resolve last-write-wins.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

from shared.billing_utils import first_list_item, minor_units_to_amount, stripe_field, stripe_id
from shared.constants import DEFAULT_BILLING_INTERVAL, UNKNOWN_PLAN_NAME
from shared.stripe_gateway import StripeGateway
from shared.types import SubscriptionItem
from shared.user_store import UserStore
from webhooks.classifier import (
    Operation,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionRemoved,
    SubscriptionUpserted,
)

logger = logging.getLogger(__name__)

# Plan name candidates, highest precedence first: (source, field)
PLAN_NAME_SOURCES = (
    ("product", "name"),
    ("price", "nickname"),
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def derive_plan_name(product: Any, price: Any) -> str:
    """First non-empty plan name in PLAN_NAME_SOURCES order, else UNKNOWN_PLAN_NAME."""
    sources = {"product": product, "price": price}
    for source, field_name in PLAN_NAME_SOURCES:
        name = stripe_field(sources[source], field_name)
        if name:
            return name
    return UNKNOWN_PLAN_NAME


def _period_bounds(subscription: dict) -> tuple[Optional[int], Optional[int]]:
    # Newer Stripe API versions only carry the period on subscription items
    item = first_list_item(subscription, "items")
    start = stripe_field(subscription, "current_period_start", stripe_field(item, "current_period_start"))
    end = stripe_field(subscription, "current_period_end", stripe_field(item, "current_period_end"))
    return start, end


@dataclass(frozen=True)
class SubscriptionRecord:
    subscriptionId: str
    customerId: str
    status: str
    planName: str
    amount: Optional[Decimal]
    currency: Optional[str]
    interval: str
    currentPeriodStart: Optional[int]
    currentPeriodEnd: Optional[int]
    cancelAtPeriodEnd: bool
    updatedAt: str

    def to_item(self) -> SubscriptionItem:
        return asdict(self)


class SubscriptionApplier:
    """Sole writer of the embedded subscription record."""

    def __init__(
        self,
        gateway: StripeGateway,
        store: UserStore,
        clock: Callable[[], str] = utc_now_iso,
    ):
        self._gateway = gateway
        self._store = store
        self._clock = clock

    async def apply(self, operation: Operation, user_id: Optional[str] = None) -> None:
        """
        Apply an operation.

        Subscription operations require the resolved user_id. Payment
        operations only log; they are acknowledged without a write.
        """
        if isinstance(operation, SubscriptionUpserted):
            await self.upsert(user_id, operation.subscription)
        elif isinstance(operation, SubscriptionRemoved):
            await self.remove(user_id)
        elif isinstance(operation, PaymentSucceeded):
            logger.info(f"Payment succeeded for invoice {stripe_field(operation.invoice, 'id')}")
        elif isinstance(operation, PaymentFailed):
            logger.warning(f"Payment failed for invoice {stripe_field(operation.invoice, 'id')}")

    async def build_record(self, subscription: dict) -> SubscriptionRecord:
        """
        Build the full record for a subscription from its first line item's price.

        Raises:
            ValueError: the subscription has no priced line item
        """
        item = first_list_item(subscription, "items")
        price_id = stripe_id(stripe_field(item, "price"))
        if not price_id:
            raise ValueError(f"Subscription {stripe_field(subscription, 'id')} has no priced line item")

        price = await self._gateway.retrieve_price(price_id)
        product_id = stripe_id(stripe_field(price, "product"))
        product = await self._gateway.retrieve_product(product_id) if product_id else None

        period_start, period_end = _period_bounds(subscription)

        return SubscriptionRecord(
            subscriptionId=stripe_field(subscription, "id"),
            customerId=stripe_id(stripe_field(subscription, "customer")),
            status=stripe_field(subscription, "status"),
            planName=derive_plan_name(product, price),
            amount=minor_units_to_amount(stripe_field(price, "unit_amount")),
            currency=stripe_field(price, "currency"),
            interval=stripe_field(stripe_field(price, "recurring"), "interval", DEFAULT_BILLING_INTERVAL),
            currentPeriodStart=period_start,
            currentPeriodEnd=period_end,
            cancelAtPeriodEnd=bool(stripe_field(subscription, "cancel_at_period_end", False)),
            updatedAt=self._clock(),
        )

    async def upsert(self, user_id: str, subscription: dict) -> SubscriptionRecord:
        record = await self.build_record(subscription)
        await self._store.set_subscription(user_id, record.to_item())
        logger.info(
            f"Updated subscription for user {user_id}: {record.planName} ({record.status})",
            extra={
                "user_id": user_id,
                "customer_id": record.customerId,
                "subscription_id": record.subscriptionId,
                "status": record.status,
            },
        )
        return record

    async def remove(self, user_id: str) -> None:
        await self._store.remove_subscription(user_id)
        logger.info(f"Removed subscription for user {user_id}", extra={"user_id": user_id})

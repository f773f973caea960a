"""
Maps verified Stripe events onto the operations the webhook knows about.

Classification is a pure lookup. Event types Stripe adds in the future
fall through to Ignored rather than raising.
"""

from dataclasses import dataclass, field
from typing import Union

from shared.constants import (
    PAYMENT_FAILED_EVENTS,
    PAYMENT_SUCCEEDED_EVENTS,
    SUBSCRIPTION_REMOVED_EVENTS,
    SUBSCRIPTION_UPSERT_EVENTS,
)
from webhooks.authenticator import VerifiedEvent


@dataclass(frozen=True)
class SubscriptionUpserted:
    subscription: dict = field(repr=False)


@dataclass(frozen=True)
class SubscriptionRemoved:
    subscription: dict = field(repr=False)


@dataclass(frozen=True)
class PaymentSucceeded:
    invoice: dict = field(repr=False)


@dataclass(frozen=True)
class PaymentFailed:
    invoice: dict = field(repr=False)


@dataclass(frozen=True)
class Ignored:
    event_type: str


Operation = Union[SubscriptionUpserted, SubscriptionRemoved, PaymentSucceeded, PaymentFailed, Ignored]

# Subscription operations need the customer resolved to a user first
SUBSCRIPTION_OPERATIONS = (SubscriptionUpserted, SubscriptionRemoved)

EVENT_ROUTES = {
    **{event_type: SubscriptionUpserted for event_type in SUBSCRIPTION_UPSERT_EVENTS},
    **{event_type: SubscriptionRemoved for event_type in SUBSCRIPTION_REMOVED_EVENTS},
    **{event_type: PaymentSucceeded for event_type in PAYMENT_SUCCEEDED_EVENTS},
    **{event_type: PaymentFailed for event_type in PAYMENT_FAILED_EVENTS},
}


def classify(event: VerifiedEvent) -> Operation:
    """Return the operation for a verified event."""
    operation = EVENT_ROUTES.get(event.type)
    if operation is None:
        return Ignored(event.type)
    return operation(event.data_object)

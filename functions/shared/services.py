"""
Process-wide services for the browser-facing billing endpoints.

The Stripe client and the users table are constructed once per execution
environment and handed to each request explicitly.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from shared.aws_clients import get_dynamodb
from shared.config import BillingConfig, load_config
from shared.stripe_gateway import StripeGateway
from shared.user_store import UserStore

T = TypeVar("T")


@dataclass(frozen=True)
class BillingServices:
    config: BillingConfig
    gateway: StripeGateway
    store: UserStore


_services: Optional[BillingServices] = None


def get_billing_services() -> BillingServices:
    """
    Build the services on first use and reuse them afterwards.

    Raises:
        ConfigurationError: the Stripe key or users table is not configured
    """
    global _services
    if _services is None:
        config = load_config(require_webhook_secret=False)
        _services = BillingServices(
            config=config,
            gateway=StripeGateway.from_api_key(config.stripe_api_key),
            store=UserStore.from_table_name(get_dynamodb(), config.users_table),
        )
    return _services


def reset_services() -> None:
    """Drop cached services. Used in tests for clean state."""
    global _services
    _services = None


def run_async(coro: Awaitable[T]) -> T:
    """Drive a coroutine to completion on a fresh event loop for this invocation."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()

"""
Async facade over a ``stripe.StripeClient``.

The SDK is synchronous, so every call runs in a worker thread via
asyncio.to_thread() and the event loop stays free for other invocations.
Failures that a Stripe redelivery could fix are re-raised as
TransientDependencyError; everything else propagates unchanged.
"""

import asyncio
import logging
import time
from typing import Any, Optional

import stripe

from shared.error_classification import classify_error
from shared.errors import TransientDependencyError
from shared.logging_utils import log_external_call

logger = logging.getLogger(__name__)

SERVICE_NAME = "stripe"


class StripeGateway:
    """Stripe calls used by the webhook pipeline and the billing endpoints."""

    def __init__(self, client: stripe.StripeClient):
        self._client = client

    @classmethod
    def from_api_key(cls, api_key: str) -> "StripeGateway":
        return cls(stripe.StripeClient(api_key))

    async def _call(self, operation: str, func, *args, **kwargs) -> Any:
        start = time.monotonic()
        try:
            result = await asyncio.to_thread(func, *args, **kwargs)
        except stripe.StripeError as e:
            latency_ms = (time.monotonic() - start) * 1000
            log_external_call(logger, SERVICE_NAME, operation, False, latency_ms, type(e).__name__)
            if classify_error(e) == "transient":
                raise TransientDependencyError(SERVICE_NAME, operation, e) from e
            raise
        log_external_call(logger, SERVICE_NAME, operation, True, (time.monotonic() - start) * 1000)
        return result

    # Lookups used by the webhook pipeline

    async def retrieve_customer(self, customer_id: str) -> Any:
        return await self._call("customers.retrieve", self._client.customers.retrieve, customer_id)

    async def retrieve_price(self, price_id: str) -> Any:
        return await self._call("prices.retrieve", self._client.prices.retrieve, price_id)

    async def retrieve_product(self, product_id: str) -> Any:
        return await self._call("products.retrieve", self._client.products.retrieve, product_id)

    # Billing endpoint operations

    async def find_customer_by_email(self, email: str) -> Optional[Any]:
        customers = await self._call(
            "customers.list",
            self._client.customers.list,
            params={"email": email, "limit": 1},
        )
        data = customers["data"] if customers is not None else []
        return data[0] if data else None

    async def create_customer(self, email: str, metadata: dict) -> Any:
        return await self._call(
            "customers.create",
            self._client.customers.create,
            params={"email": email, "metadata": metadata},
        )

    async def update_customer_metadata(self, customer_id: str, metadata: dict) -> Any:
        return await self._call(
            "customers.update",
            self._client.customers.update,
            customer_id,
            params={"metadata": metadata},
        )

    async def create_checkout_session(self, params: dict) -> Any:
        return await self._call(
            "checkout.sessions.create",
            self._client.checkout.sessions.create,
            params=params,
        )

    async def create_portal_session(self, customer_id: str, return_url: str) -> Any:
        return await self._call(
            "billing_portal.sessions.create",
            self._client.billing_portal.sessions.create,
            params={"customer": customer_id, "return_url": return_url},
        )

    async def list_invoices(self, customer_id: str, limit: int) -> list:
        invoices = await self._call(
            "invoices.list",
            self._client.invoices.list,
            params={"customer": customer_id, "limit": limit},
        )
        return list(invoices["data"]) if invoices is not None else []

"""
Resolves a Stripe customer to the internal user it was created for.

The link is the user id the checkout endpoint stores in the customer's
metadata. It is read-only here.
"""

import logging
from typing import Any, Optional

from shared.billing_utils import stripe_field, stripe_id
from shared.config import DEFAULT_USER_ID_METADATA_KEY
from shared.errors import UnresolvedUserError
from shared.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


class SubscriberResolver:
    def __init__(self, gateway: StripeGateway, metadata_key: str = DEFAULT_USER_ID_METADATA_KEY):
        self._gateway = gateway
        self.metadata_key = metadata_key

    async def resolve(self, customer: Any) -> str:
        """
        Return the internal user id for a Stripe customer.

        Args:
            customer: Customer id, or an expanded customer object

        Raises:
            UnresolvedUserError: no customer id, the customer was deleted, or
                its metadata carries no user id
            TransientDependencyError: Stripe could not be reached
        """
        customer_id: Optional[str] = stripe_id(customer)
        if not customer_id:
            raise UnresolvedUserError(None, "Subscription carries no customer id")

        record = await self._gateway.retrieve_customer(customer_id)
        if stripe_field(record, "deleted", False):
            raise UnresolvedUserError(customer_id, f"Customer {customer_id} has been deleted")

        user_id = stripe_field(stripe_field(record, "metadata"), self.metadata_key)
        if not user_id:
            raise UnresolvedUserError(customer_id)

        logger.info(
            f"Resolved customer {customer_id} to user {user_id}",
            extra={"customer_id": customer_id, "user_id": user_id},
        )
        return user_id

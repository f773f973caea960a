"""
Stripe webhook pipeline: authenticate, classify, resolve, apply, report.

Stateless per event. The Stripe client and the users table are built once
by build_pipeline() and injected; nothing here reaches for globals.
"""

import logging
from typing import Optional, Union

from shared.aws_clients import get_dynamodb
from shared.billing_utils import stripe_field, stripe_id
from shared.config import BillingConfig
from shared.errors import AuthenticationError, TransientDependencyError, UnresolvedUserError
from shared.stripe_gateway import StripeGateway
from shared.types import LambdaResponse
from shared.user_store import UserStore
from webhooks.applier import SubscriptionApplier
from webhooks.authenticator import EventAuthenticator, VerifiedEvent
from webhooks.classifier import SUBSCRIPTION_OPERATIONS, Ignored, Operation, classify
from webhooks.reporter import Outcome, report
from webhooks.resolver import SubscriberResolver

logger = logging.getLogger(__name__)


class WebhookPipeline:
    def __init__(
        self,
        authenticator: EventAuthenticator,
        resolver: SubscriberResolver,
        applier: SubscriptionApplier,
    ):
        self.authenticator = authenticator
        self.resolver = resolver
        self.applier = applier

    async def handle(self, payload: Union[bytes, str], signature: Optional[str]) -> LambdaResponse:
        """Process one webhook delivery and return the response for Stripe."""
        try:
            event = self.authenticator.verify(payload, signature)
        except AuthenticationError as e:
            logger.warning(f"Rejected webhook: {e}", extra={"reason": e.reason})
            return report(Outcome.REJECTED, e.reason)

        outcome = await self.process(event)
        return report(outcome)

    async def process(self, event: VerifiedEvent) -> Outcome:
        """Classify and apply a verified event, mapping every failure to an Outcome."""
        context = {
            "event_id": event.id,
            "event_type": event.type,
            "customer_id": stripe_id(stripe_field(event.data_object, "customer")),
        }
        logger.info(f"Processing Stripe event: {event.type} (id={event.id})", extra=context)

        try:
            operation = classify(event)
            if isinstance(operation, Ignored):
                logger.info(f"Unhandled event type: {event.type}", extra=context)
                return Outcome.IGNORED

            user_id = await self._resolve(operation)
            if user_id:
                context["user_id"] = user_id
            await self.applier.apply(operation, user_id)

        except UnresolvedUserError as e:
            logger.error(f"Unresolved user for {event.type}: {e}", extra=context)
            return Outcome.UNRESOLVED
        except TransientDependencyError as e:
            logger.error(f"Transient error handling {event.type}: {e}", extra=context)
            return Outcome.RETRYABLE
        except Exception as e:
            # Permanent failures are acknowledged so Stripe stops redelivering
            logger.error(f"Permanent error handling {event.type}: {e}", extra=context, exc_info=True)
            return Outcome.FAILED

        return Outcome.APPLIED

    async def _resolve(self, operation: Operation) -> Optional[str]:
        if not isinstance(operation, SUBSCRIPTION_OPERATIONS):
            return None
        return await self.resolver.resolve(stripe_field(operation.subscription, "customer"))


def build_pipeline(
    config: BillingConfig,
    gateway: Optional[StripeGateway] = None,
    store: Optional[UserStore] = None,
) -> WebhookPipeline:
    """Wire a pipeline from configuration, building clients that were not supplied."""
    gateway = gateway or StripeGateway.from_api_key(config.stripe_api_key)
    store = store or UserStore.from_table_name(get_dynamodb(), config.users_table)
    return WebhookPipeline(
        authenticator=EventAuthenticator(config.webhook_secret, config.webhook_tolerance_seconds),
        resolver=SubscriberResolver(gateway, config.user_id_metadata_key),
        applier=SubscriptionApplier(gateway, store),
    )

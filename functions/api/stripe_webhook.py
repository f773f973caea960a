"""
Stripe Webhook Endpoint - POST /stripe-webhook

Keeps each user's embedded subscription record in sync with Stripe.
Uses Stripe signature verification instead of user auth.

Handles:
- customer.subscription.created / updated: Replace the subscription record
- customer.subscription.deleted: Remove the subscription record
- invoice.payment_succeeded / invoice.paid / invoice.payment_failed: Acknowledge
"""

import logging
from typing import Optional

from shared.config import load_config
from shared.logging_utils import configure_structured_logging, set_request_id
from shared.request_utils import get_header, get_raw_body
from shared.services import run_async
from shared.types import APIGatewayEvent, LambdaContext, LambdaResponse
from webhooks.pipeline import WebhookPipeline, build_pipeline

logger = logging.getLogger(__name__)

# Built once per execution environment (cold start)
_pipeline: Optional[WebhookPipeline] = None


def get_pipeline() -> WebhookPipeline:
    """
    Return the process-wide pipeline, building it on first use.

    Raises:
        ConfigurationError: Stripe secrets or the users table are not
            configured. This fails the invocation outright; it is never
            turned into a webhook response.
    """
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline(load_config(require_webhook_secret=True))
    return _pipeline


def reset_pipeline() -> None:
    """Drop the cached pipeline. Used in tests for clean state."""
    global _pipeline
    _pipeline = None


def handler(event: APIGatewayEvent, context: LambdaContext) -> LambdaResponse:
    """Lambda handler for Stripe webhooks."""
    configure_structured_logging()
    set_request_id(event)

    pipeline = get_pipeline()

    payload = get_raw_body(event)
    signature = get_header(event, "stripe-signature")

    return run_async(pipeline.handle(payload, signature))

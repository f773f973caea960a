"""
Shared error classification for Stripe and DynamoDB failures.

Decides whether a failed dependency call is worth a redelivery from
Stripe ("transient") or will fail the same way every time ("permanent").
"""

import stripe
from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from shared.constants import THROTTLING_ERRORS

# Transient Stripe errors - network, rate limiting, Stripe-side 5xx
TRANSIENT_STRIPE_ERRORS = (
    stripe.APIConnectionError,
    stripe.RateLimitError,
    stripe.APIError,
)

# Transient botocore errors - the request never got a response
TRANSIENT_BOTOCORE_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)

# DynamoDB error codes that will fail identically on every delivery
PERMANENT_CLIENT_ERROR_CODES = (
    "ValidationException",
    "ConditionalCheckFailedException",
)


def classify_error(error: BaseException) -> str:
    """
    Classify a dependency error as transient or permanent.

    Args:
        error: The exception raised by a Stripe or boto3 call

    Returns:
        "transient" - Stripe should redeliver the event
        "permanent" - Redelivery cannot help
    """
    if isinstance(error, TRANSIENT_STRIPE_ERRORS):
        return "transient"
    if isinstance(error, stripe.StripeError):
        return "permanent"

    if isinstance(error, TRANSIENT_BOTOCORE_ERRORS):
        return "transient"
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        if code in THROTTLING_ERRORS:
            return "transient"
        if code in PERMANENT_CLIENT_ERROR_CODES:
            return "permanent"
        # DynamoDB errors are transient unless known otherwise
        return "transient"

    return "permanent"

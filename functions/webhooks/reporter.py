"""
Turns pipeline outcomes into API Gateway responses for Stripe.

Stripe redelivers anything that is not a 2xx, so only signature failures
(400) and failures a retry could fix (500) are reported as errors.
Everything else is acknowledged, including events that could not be
applied, to stop redelivery loops that can never succeed.
"""

import logging
from enum import Enum
from typing import Optional

from shared.response_utils import error_response, json_response
from shared.types import LambdaResponse

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    UNRESOLVED = "unresolved"
    FAILED = "failed"
    REJECTED = "rejected"
    RETRYABLE = "retryable"


ACKNOWLEDGED = {"received": True}
ACKNOWLEDGED_UNPROCESSED = {"received": True, "processed": False}

# outcome -> (status code, body or None for an error body)
RESPONSE_POLICY: dict[Outcome, tuple[int, Optional[dict]]] = {
    Outcome.APPLIED: (200, ACKNOWLEDGED),
    Outcome.IGNORED: (200, ACKNOWLEDGED),
    Outcome.UNRESOLVED: (200, ACKNOWLEDGED_UNPROCESSED),
    Outcome.FAILED: (200, ACKNOWLEDGED_UNPROCESSED),
    Outcome.REJECTED: (400, None),
    Outcome.RETRYABLE: (500, None),
}

ERROR_MESSAGES = {
    "missing_signature": "Missing Stripe signature",
    "invalid_signature": "Invalid signature",
    "invalid_payload": "Invalid webhook payload",
    "temporary_error": "Temporary error, please retry",
}


def report(outcome: Outcome, error_code: Optional[str] = None) -> LambdaResponse:
    """Build the response for an outcome from RESPONSE_POLICY."""
    status_code, body = RESPONSE_POLICY[outcome]
    if body is not None:
        return json_response(status_code, dict(body))

    if outcome is Outcome.RETRYABLE:
        error_code = "temporary_error"
    error_code = error_code or "invalid_signature"
    return error_response(status_code, error_code, ERROR_MESSAGES.get(error_code, "Webhook rejected"))

"""
Create Billing Portal Session Endpoint - POST /create-portal-session

Creates a Stripe Billing Portal session so a subscriber can manage their
subscription. The customer id comes from the user's subscription record.
"""

import logging

import stripe

from shared.billing_utils import stripe_field
from shared.config import BillingConfig
from shared.errors import (
    APIError,
    InvalidRequestError,
    MethodNotAllowedError,
    NotFoundError,
    TransientDependencyError,
)
from shared.logging_utils import configure_structured_logging, set_request_id
from shared.request_utils import get_method, get_origin, parse_json_body, redirect_base
from shared.response_utils import error_response, preflight_response, success_response
from shared.services import BillingServices, get_billing_services, run_async
from shared.user_store import SUBSCRIPTION_ATTRIBUTE

logger = logging.getLogger(__name__)


async def create_portal(event: dict, body: dict, services: BillingServices) -> dict:
    user_id = body.get("userId")
    if not user_id:
        raise InvalidRequestError("Missing required field: userId")

    user = await services.store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found", code="user_not_found")

    customer_id = stripe_field(user.get(SUBSCRIPTION_ATTRIBUTE), "customerId")
    if not customer_id:
        raise NotFoundError("No subscription found for this user", code="no_subscription")

    config: BillingConfig = services.config
    return_url = body.get("returnUrl") or f"{redirect_base(event, config.base_url)}/dashboard?payment=updated"
    session = await services.gateway.create_portal_session(customer_id, return_url)

    logger.info(f"Created billing portal session for user {user_id}", extra={"user_id": user_id})
    return {"url": session["url"]}


def handler(event, context):
    """
    Lambda handler for POST /create-portal-session.

    Request body:
    {
        "userId": "...",
        "returnUrl": "https://..." (optional)
    }

    Returns:
    {
        "url": "https://billing.stripe.com/..."
    }
    """
    configure_structured_logging()
    set_request_id(event)
    origin = get_origin(event)
    method = get_method(event)

    if method == "OPTIONS":
        return preflight_response(origin)

    try:
        if method != "POST":
            raise MethodNotAllowedError(method)
        body = parse_json_body(event)
        result = run_async(create_portal(event, body, get_billing_services()))
    except APIError as e:
        return error_response(e.status_code, e.code, e.message, details=e.details, origin=origin)
    except TransientDependencyError as e:
        logger.error(f"Temporary dependency failure: {e}")
        return error_response(500, "temporary_error", "Temporary error, please retry", origin=origin)
    except stripe.StripeError as e:
        logger.error(f"Error creating billing portal session: {e}")
        return error_response(500, "stripe_error", "Failed to create billing portal session", origin=origin)

    return success_response(result, origin=origin)

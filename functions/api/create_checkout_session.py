"""
Create Checkout Session Endpoint - POST /create-checkout-session

Creates a Stripe Checkout session for a subscription. This is where the
Stripe customer gets tagged with the internal user id that the webhook
later resolves.
"""

import logging

import stripe

from shared.billing_utils import stripe_field
from shared.config import BillingConfig
from shared.errors import APIError, InvalidRequestError, MethodNotAllowedError, TransientDependencyError
from shared.logging_utils import configure_structured_logging, mask_email, set_request_id
from shared.request_utils import get_method, get_origin, parse_json_body, redirect_base
from shared.response_utils import error_response, preflight_response, success_response
from shared.services import get_billing_services, run_async
from shared.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("priceId", "userId", "userEmail")
SUBMIT_MESSAGE = "Subscribe to unlock all features"


async def ensure_tagged_customer(gateway: StripeGateway, email: str, user_id: str, metadata_key: str):
    """
    Find the Stripe customer for an email, tagging it with the user id, or create one.

    An existing tag is never overwritten.
    """
    customer = await gateway.find_customer_by_email(email)
    if customer is None:
        return await gateway.create_customer(email, {metadata_key: user_id})

    if not stripe_field(stripe_field(customer, "metadata"), metadata_key):
        await gateway.update_customer_metadata(customer["id"], {metadata_key: user_id})
    return customer


def build_checkout_params(
    customer_id: str,
    price_id: str,
    user_id: str,
    success_url: str,
    cancel_url: str,
    metadata_key: str,
) -> dict:
    return {
        "customer": customer_id,
        "payment_method_types": ["card"],
        "line_items": [{"price": price_id, "quantity": 1}],
        "mode": "subscription",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": {metadata_key: user_id},
        "custom_text": {"submit": {"message": SUBMIT_MESSAGE}},
        "allow_promotion_codes": True,
        "billing_address_collection": "auto",
        "subscription_data": {"metadata": {metadata_key: user_id}},
    }


async def create_checkout(event: dict, body: dict, gateway: StripeGateway, config: BillingConfig) -> dict:
    missing = [name for name in REQUIRED_FIELDS if not body.get(name)]
    if missing:
        raise InvalidRequestError(
            f"Missing required fields: {', '.join(REQUIRED_FIELDS)}",
            details={"missing": missing},
        )

    user_id = body["userId"]
    base = redirect_base(event, config.base_url)

    customer = await ensure_tagged_customer(gateway, body["userEmail"], user_id, config.user_id_metadata_key)
    session = await gateway.create_checkout_session(
        build_checkout_params(
            customer_id=customer["id"],
            price_id=body["priceId"],
            user_id=user_id,
            success_url=body.get("successUrl") or f"{base}/payment?payment=success",
            cancel_url=body.get("cancelUrl") or f"{base}/payment?payment=cancelled",
            metadata_key=config.user_id_metadata_key,
        )
    )

    logger.info(
        f"Created checkout session for user {user_id} ({mask_email(body['userEmail'])})",
        extra={"user_id": user_id, "customer_id": customer["id"]},
    )
    return {"sessionId": session["id"], "url": stripe_field(session, "url")}


def handler(event, context):
    """
    Lambda handler for POST /create-checkout-session.

    Request body:
    {
        "priceId": "price_...",
        "userId": "...",
        "userEmail": "...",
        "successUrl": "https://..." (optional),
        "cancelUrl": "https://..." (optional)
    }

    Returns:
    {
        "sessionId": "cs_...",
        "url": "https://checkout.stripe.com/..."
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
        services = get_billing_services()
        result = run_async(create_checkout(event, body, services.gateway, services.config))
    except APIError as e:
        return error_response(e.status_code, e.code, e.message, details=e.details, origin=origin)
    except TransientDependencyError as e:
        logger.error(f"Temporary dependency failure: {e}")
        return error_response(500, "temporary_error", "Temporary error, please retry", origin=origin)
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating checkout session: {e}")
        return error_response(500, "stripe_error", "Failed to create checkout session", origin=origin)

    return success_response(result, origin=origin)

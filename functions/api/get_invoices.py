"""
Get Invoices Endpoint - GET|POST /get-invoices

Lists a subscriber's Stripe invoices for the billing page.
"""

import logging

import stripe

from shared.billing_utils import format_invoice, stripe_field
from shared.constants import MAX_INVOICES
from shared.errors import (
    APIError,
    InvalidRequestError,
    MethodNotAllowedError,
    NotFoundError,
    TransientDependencyError,
)
from shared.logging_utils import configure_structured_logging, set_request_id
from shared.request_utils import get_method, get_origin, get_query_param, parse_json_body
from shared.response_utils import error_response, preflight_response, success_response
from shared.services import BillingServices, get_billing_services, run_async
from shared.user_store import SUBSCRIPTION_ATTRIBUTE

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST")


async def list_user_invoices(user_id: str, services: BillingServices) -> dict:
    if not user_id:
        raise InvalidRequestError("Missing required field: userId")

    user = await services.store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found", code="user_not_found")

    customer_id = stripe_field(user.get(SUBSCRIPTION_ATTRIBUTE), "customerId")
    if not customer_id:
        return {"invoices": []}

    invoices = await services.gateway.list_invoices(customer_id, MAX_INVOICES)
    return {"invoices": [format_invoice(invoice) for invoice in invoices]}


def handler(event, context):
    """
    Lambda handler for GET|POST /get-invoices.

    userId comes from the query string (GET) or the JSON body (POST).

    Returns:
    {
        "invoices": [{"id": "in_...", "amount": 9.99, "currency": "USD", ...}]
    }
    """
    configure_structured_logging()
    set_request_id(event)
    origin = get_origin(event)
    method = get_method(event)

    if method == "OPTIONS":
        return preflight_response(origin)

    try:
        if method not in ALLOWED_METHODS:
            raise MethodNotAllowedError(method)
        if method == "POST":
            user_id = parse_json_body(event).get("userId")
        else:
            user_id = get_query_param(event, "userId")
        result = run_async(list_user_invoices(user_id, get_billing_services()))
    except APIError as e:
        return error_response(e.status_code, e.code, e.message, details=e.details, origin=origin)
    except TransientDependencyError as e:
        logger.error(f"Temporary dependency failure: {e}")
        return error_response(500, "temporary_error", "Temporary error, please retry", origin=origin)
    except stripe.StripeError as e:
        logger.error(f"Error fetching invoices: {e}")
        return error_response(500, "stripe_error", "Failed to fetch invoices", origin=origin)

    return success_response(result, origin=origin)

"""
Error types for the billing functions.

APIError subclasses are returned to browsers by the collaborator endpoints.
WebhookError subclasses drive the Stripe webhook pipeline's outcome policy.
"""

import json
from typing import Optional


class APIError(Exception):
    """Base class for API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> dict:
        """Convert to API Gateway response format."""
        body = {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }
        if self.details:
            body["error"]["details"] = self.details

        return {
            "statusCode": self.status_code,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(body),
        }


class InvalidRequestError(APIError):
    """Raised for general invalid request errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="invalid_request",
            message=message,
            status_code=400,
            details=details,
        )


class NotFoundError(APIError):
    """Raised when a user or their billing data cannot be found."""

    def __init__(self, message: str, code: str = "not_found"):
        super().__init__(code=code, message=message, status_code=404)


class MethodNotAllowedError(APIError):
    """Raised when an endpoint is called with an unsupported HTTP method."""

    def __init__(self, method: Optional[str] = None):
        super().__init__(
            code="method_not_allowed",
            message="Method not allowed",
            status_code=405,
            details={"method": method} if method else None,
        )


# ===========================================
# Webhook pipeline errors
# ===========================================


class WebhookError(Exception):
    """Base class for failures inside the Stripe webhook pipeline."""


class AuthenticationError(WebhookError):
    """The inbound event could not be proven to come from Stripe.

    ``reason`` doubles as the error code in the 400 response:
    missing_signature, invalid_signature or invalid_payload.
    """

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


class UnresolvedUserError(WebhookError):
    """A Stripe customer does not map to an internal user.

    Terminal for the event: retrying cannot tag a customer record that was
    never tagged.
    """

    def __init__(self, customer_id: Optional[str], message: Optional[str] = None):
        self.customer_id = customer_id
        super().__init__(message or f"No internal user id in metadata for customer {customer_id}")


class UserNotFoundError(UnresolvedUserError):
    """The customer's internal user id points at no user document."""

    def __init__(self, user_id: str, customer_id: Optional[str] = None):
        self.user_id = user_id
        super().__init__(customer_id, f"User document {user_id} does not exist")


class TransientDependencyError(WebhookError):
    """A Stripe or DynamoDB call failed in a way a retry may fix."""

    def __init__(self, service: str, operation: str, error: Exception):
        self.service = service
        self.operation = operation
        super().__init__(f"{service} {operation} failed: {error}")


class ConfigurationError(Exception):
    """Required process configuration is missing or unreadable.

    Only the option names are reported, never their values.
    """

    def __init__(self, missing: list[str], message: Optional[str] = None):
        self.missing = list(missing)
        super().__init__(message or f"Missing required configuration: {', '.join(self.missing)}")

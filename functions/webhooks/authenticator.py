"""
Stripe webhook signature verification.

This is the only trust boundary of the webhook: nothing in the body is
looked at until the ``Stripe-Signature`` header has been checked against
the exact bytes that arrived.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import stripe

from shared.errors import AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


@dataclass(frozen=True)
class VerifiedEvent:
    """A Stripe event whose signature and timestamp have been verified."""

    id: str
    type: str
    data_object: dict = field(repr=False)
    created: Optional[int] = None
    livemode: Optional[bool] = None


class EventAuthenticator:
    """Verifies ``t=...,v1=...`` HMAC-SHA256 signatures over ``timestamp.body``."""

    def __init__(self, signing_secret: str, tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS):
        if not signing_secret:
            raise ValueError("signing_secret is required")
        if tolerance_seconds is None or tolerance_seconds <= 0:
            raise ValueError("tolerance_seconds must be positive")
        self._signing_secret = signing_secret
        self.tolerance_seconds = tolerance_seconds

    def __repr__(self) -> str:
        return f"EventAuthenticator(tolerance_seconds={self.tolerance_seconds})"

    def verify(self, payload: Union[bytes, str], signature: Optional[str]) -> VerifiedEvent:
        """
        Verify a raw webhook body and return the parsed event.

        Args:
            payload: Request body exactly as received
            signature: Value of the Stripe-Signature header

        Returns:
            VerifiedEvent

        Raises:
            AuthenticationError: signature missing, malformed, mismatched,
                outside the replay window, or the verified body is not a
                Stripe event envelope
        """
        if not signature:
            raise AuthenticationError("missing_signature", "Missing Stripe signature")

        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise AuthenticationError("invalid_signature", "Payload is not valid UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(
                payload, signature, self._signing_secret, self.tolerance_seconds
            )
        except stripe.SignatureVerificationError as e:
            raise AuthenticationError("invalid_signature", f"Invalid signature: {e.user_message or e}") from e

        if _signed_timestamp(signature) > time.time() + self.tolerance_seconds:
            raise AuthenticationError("invalid_signature", "Timestamp is in the future")

        return _parse_envelope(payload)


def _signed_timestamp(signature: str) -> int:
    # verify_header has already rejected headers without a numeric t=
    for part in signature.split(","):
        key, _, value = part.partition("=")
        if key.strip() == "t":
            return int(value)
    raise AuthenticationError("invalid_signature", "Signature header has no timestamp")


def _parse_envelope(payload: str) -> VerifiedEvent:
    try:
        envelope: Any = json.loads(payload)
    except json.JSONDecodeError as e:
        raise AuthenticationError("invalid_payload", "Webhook body is not valid JSON") from e

    if not isinstance(envelope, dict):
        raise AuthenticationError("invalid_payload", "Webhook body is not an event object")

    event_type = envelope.get("type")
    data = envelope.get("data")
    data_object = data.get("object") if isinstance(data, dict) else None
    if not isinstance(event_type, str) or not isinstance(data_object, dict):
        raise AuthenticationError("invalid_payload", "Webhook body is missing type or data.object")

    return VerifiedEvent(
        id=envelope.get("id") or "",
        type=event_type,
        data_object=data_object,
        created=envelope.get("created"),
        livemode=envelope.get("livemode"),
    )

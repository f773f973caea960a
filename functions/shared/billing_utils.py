"""Shared billing utilities for Stripe-related operations."""

import logging
from decimal import Decimal
from typing import Any, Optional

from shared.constants import DEFAULT_INVOICE_DESCRIPTION, MINOR_UNITS_PER_UNIT
from shared.types import FormattedInvoice

logger = logging.getLogger(__name__)


def stripe_field(obj: Any, key: str, default: Any = None) -> Any:
    """Read a field from a Stripe object or plain dict, tolerating absence and None."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError):
        return default
    return default if value is None else value


def stripe_id(value: Any) -> Optional[str]:
    """Id of a Stripe reference that may be a bare id or an expanded object."""
    if value is None or isinstance(value, str):
        return value
    return stripe_field(value, "id")


def first_list_item(obj: Any, key: str) -> Any:
    """First entry of a Stripe list attribute such as ``items`` or ``lines``."""
    data = stripe_field(stripe_field(obj, key), "data", [])
    return data[0] if data else None


def minor_units_to_amount(minor_units: Optional[int]) -> Optional[Decimal]:
    """Convert a Stripe minor-unit amount (e.g. cents) to decimal currency units."""
    if minor_units is None:
        return None
    return Decimal(minor_units) / Decimal(MINOR_UNITS_PER_UNIT)


def to_millis(epoch_seconds: Optional[int]) -> Optional[int]:
    """Stripe epoch seconds to JavaScript epoch milliseconds."""
    if epoch_seconds is None:
        return None
    return int(epoch_seconds) * 1000


def format_invoice(invoice: Any) -> FormattedInvoice:
    """Project a Stripe invoice into the shape the billing page renders."""
    description = stripe_field(invoice, "description") or stripe_field(
        first_list_item(invoice, "lines"), "description"
    )
    return {
        "id": stripe_field(invoice, "id"),
        "number": stripe_field(invoice, "number"),
        "amount": minor_units_to_amount(stripe_field(invoice, "amount_paid", 0)),
        "currency": (stripe_field(invoice, "currency") or "").upper(),
        "status": stripe_field(invoice, "status"),
        "date": to_millis(stripe_field(invoice, "created")),
        "periodStart": to_millis(stripe_field(invoice, "period_start")),
        "periodEnd": to_millis(stripe_field(invoice, "period_end")),
        "hostedInvoiceUrl": stripe_field(invoice, "hosted_invoice_url"),
        "invoicePdf": stripe_field(invoice, "invoice_pdf"),
        "description": description or DEFAULT_INVOICE_DESCRIPTION,
    }

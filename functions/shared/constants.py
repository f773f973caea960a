"""
Shared constants for the Nuerlo billing functions.
"""

# Stripe event types routed by the webhook classifier
SUBSCRIPTION_UPSERT_EVENTS = (
    "customer.subscription.created",
    "customer.subscription.updated",
)
SUBSCRIPTION_REMOVED_EVENTS = ("customer.subscription.deleted",)
PAYMENT_SUCCEEDED_EVENTS = (
    "invoice.payment_succeeded",
    "invoice.paid",
)
PAYMENT_FAILED_EVENTS = ("invoice.payment_failed",)

# Subscription record defaults
UNKNOWN_PLAN_NAME = "Unknown Plan"
DEFAULT_BILLING_INTERVAL = "month"

# Stripe amounts are in minor units (cents)
MINOR_UNITS_PER_UNIT = 100

# Invoice listing
MAX_INVOICES = 100
DEFAULT_INVOICE_DESCRIPTION = "Subscription payment"

# DynamoDB throttling error codes worth a redelivery
THROTTLING_ERRORS = (
    "ProvisionedThroughputExceededException",
    "RequestLimitExceeded",
    "ThrottlingException",
    "InternalServerError",
)

"""
Shared Type Definitions for Lambda Handlers.

Provides TypedDict definitions for AWS Lambda events and responses.
"""

from typing import TypedDict, Optional, Any


class APIGatewayEvent(TypedDict, total=False):
    """API Gateway proxy event structure."""

    httpMethod: str
    headers: dict[str, str]
    pathParameters: Optional[dict[str, str]]
    queryStringParameters: Optional[dict[str, str]]
    body: Optional[str]
    requestContext: dict[str, Any]
    resource: str
    path: str
    isBase64Encoded: bool


class LambdaContext:
    """Lambda context object (simplified type hints)."""

    function_name: str
    function_version: str
    invoked_function_arn: str
    memory_limit_in_mb: int
    aws_request_id: str
    log_group_name: str
    log_stream_name: str

    def get_remaining_time_in_millis(self) -> int:
        """Get remaining execution time in milliseconds."""
        ...


class LambdaResponse(TypedDict):
    """Standard Lambda response structure."""

    statusCode: int
    headers: dict[str, str]
    body: str


class SubscriptionItem(TypedDict, total=False):
    """Subscription map embedded on a user document."""

    subscriptionId: str
    customerId: str
    status: str
    planName: str
    amount: Any  # Decimal
    currency: Optional[str]
    interval: str
    currentPeriodStart: Optional[int]
    currentPeriodEnd: Optional[int]
    cancelAtPeriodEnd: bool
    updatedAt: str


class FormattedInvoice(TypedDict):
    """Invoice projection returned to the dashboard."""

    id: str
    number: Optional[str]
    amount: Any  # Decimal
    currency: str
    status: Optional[str]
    date: Optional[int]
    periodStart: Optional[int]
    periodEnd: Optional[int]
    hostedInvoiceUrl: Optional[str]
    invoicePdf: Optional[str]
    description: str

"""
Shared pytest fixtures for the billing function tests.
"""

import hashlib
import hmac
import json
import os
import sys
import time
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# Add functions directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "functions"))

USERS_TABLE = "nuerlo-users"
WEBHOOK_SECRET = "whsec_test_secret"
STRIPE_API_KEY = "sk_test_123"


def pytest_configure(config):
    """Set AWS credentials before test collection.

    This runs before test collection starts, ensuring boto3 resource
    creation during imports doesn't fail with NoRegionError.
    """
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_REGION", "us-east-1")


@pytest.fixture(autouse=True)
def aws_credentials():
    """Set fake AWS credentials for all tests."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
    os.environ["AWS_REGION"] = "us-east-1"


@pytest.fixture(autouse=True)
def billing_env(monkeypatch):
    """Configure Stripe and the users table through the environment."""
    monkeypatch.setenv("STRIPE_SECRET_KEY", STRIPE_API_KEY)
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setenv("USERS_TABLE", USERS_TABLE)
    monkeypatch.delenv("STRIPE_SECRET_ARN", raising=False)
    monkeypatch.delenv("STRIPE_WEBHOOK_SECRET_ARN", raising=False)
    monkeypatch.delenv("CUSTOMER_USER_ID_METADATA_KEY", raising=False)
    monkeypatch.delenv("STRIPE_WEBHOOK_TOLERANCE_SECONDS", raising=False)
    monkeypatch.delenv("BASE_URL", raising=False)


@pytest.fixture(autouse=True)
def reset_cached_state():
    """Reset process-wide clients and services between tests."""
    yield
    from shared.aws_clients import reset_clients
    from shared.services import reset_services

    reset_clients()
    reset_services()
    try:
        import api.stripe_webhook as stripe_webhook
        stripe_webhook.reset_pipeline()
    except ImportError:
        pass


def create_users_table(dynamodb):
    """Create the users table keyed by internal user id."""
    return dynamodb.create_table(
        TableName=USERS_TABLE,
        KeySchema=[{"AttributeName": "pk", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "pk", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def mock_dynamodb():
    """Provide mocked DynamoDB with tables."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        create_users_table(dynamodb)
        yield dynamodb


@pytest.fixture
def users_table(mock_dynamodb):
    """Users table with a user who has no subscription yet."""
    table = mock_dynamodb.Table(USERS_TABLE)
    table.put_item(
        Item={
            "pk": "user_42",
            "email": "ada@example.com",
            "displayName": "Ada",
        }
    )
    return table


@pytest.fixture
def user_store(users_table):
    from shared.user_store import UserStore

    return UserStore(users_table)


@pytest.fixture
def stripe_client():
    """MagicMock standing in for stripe.StripeClient, preloaded with the example catalogue."""
    client = MagicMock()
    customers = {
        "cus_1": {"id": "cus_1", "metadata": {"internalUserId": "user_42"}},
        "cus_untagged": {"id": "cus_untagged", "metadata": {}},
        "cus_ghost": {"id": "cus_ghost", "metadata": {"internalUserId": "user_missing"}},
    }
    prices = {
        "price_1": {
            "id": "price_1",
            "product": "prod_1",
            "unit_amount": 999,
            "currency": "usd",
            "nickname": "Pro monthly",
            "recurring": {"interval": "month"},
        },
    }
    products = {"prod_1": {"id": "prod_1", "name": "Pro Plan"}}

    client.customers.retrieve.side_effect = lambda customer_id, *a, **kw: customers[customer_id]
    client.prices.retrieve.side_effect = lambda price_id, *a, **kw: prices[price_id]
    client.products.retrieve.side_effect = lambda product_id, *a, **kw: products[product_id]
    client.catalogue = {"customers": customers, "prices": prices, "products": products}
    return client


@pytest.fixture
def gateway(stripe_client):
    from shared.stripe_gateway import StripeGateway

    return StripeGateway(stripe_client)


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header (t=...,v1=...) for a payload."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed_payload = f"{timestamp}.{payload}"
    signature = hmac.new(secret.encode("utf-8"), signed_payload.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def subscription_object():
    """The subscription from the customer.subscription.updated example."""
    return {
        "id": "sub_1",
        "object": "subscription",
        "customer": "cus_1",
        "status": "active",
        "items": {"data": [{"price": {"id": "price_1"}}]},
        "current_period_start": 1700000000,
        "current_period_end": 1702592000,
        "cancel_at_period_end": False,
    }


@pytest.fixture
def make_event():
    """Factory for Stripe event envelopes serialized to a JSON string."""

    def _make(event_type: str, data_object: dict, event_id: str = "evt_1") -> str:
        return json.dumps(
            {
                "id": event_id,
                "object": "event",
                "type": event_type,
                "created": 1700000100,
                "livemode": False,
                "data": {"object": data_object},
            }
        )

    return _make


@pytest.fixture
def api_gateway_event():
    """Base API Gateway event for Lambda handler tests."""
    return {
        "httpMethod": "GET",
        "headers": {},
        "pathParameters": {},
        "queryStringParameters": {},
        "body": None,
        "requestContext": {
            "identity": {"sourceIp": "127.0.0.1"},
        },
    }


@pytest.fixture
def webhook_event(api_gateway_event):
    """Factory for a signed webhook POST."""

    def _make(payload: str, signature: str = None) -> dict:
        api_gateway_event["httpMethod"] = "POST"
        api_gateway_event["body"] = payload
        api_gateway_event["headers"] = {
            "Stripe-Signature": sign_payload(payload) if signature is None else signature,
        }
        return api_gateway_event

    return _make

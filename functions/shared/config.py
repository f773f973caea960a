"""
Process-wide billing configuration.

Loaded once per execution environment and handed to the services that
need it. Secrets come either straight from the environment or from
Secrets Manager (``*_ARN`` variables), and are kept out of ``repr`` so a
stray log line cannot leak them.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from shared.aws_clients import get_secretsmanager
from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_USER_ID_METADATA_KEY = "internalUserId"
DEFAULT_WEBHOOK_TOLERANCE_SECONDS = 300
DEFAULT_BASE_URL = "https://nuerlo.com"


@dataclass(frozen=True)
class BillingConfig:
    """Settings shared by the webhook and the collaborator endpoints."""

    stripe_api_key: str = field(repr=False)
    users_table: str
    webhook_secret: Optional[str] = field(default=None, repr=False)
    user_id_metadata_key: str = DEFAULT_USER_ID_METADATA_KEY
    webhook_tolerance_seconds: int = DEFAULT_WEBHOOK_TOLERANCE_SECONDS
    base_url: str = DEFAULT_BASE_URL


def _read_secret(secret_arn: str, json_field: str, option_name: str) -> str:
    """Read a secret value, accepting either a JSON document or a raw string."""
    try:
        response = get_secretsmanager().get_secret_value(SecretId=secret_arn)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to retrieve secret for field '{json_field}': {type(e).__name__}")
        raise ConfigurationError([option_name], f"Unable to read secret for {option_name}") from e

    secret_value = response.get("SecretString", "")
    try:
        secret_json = json.loads(secret_value)
    except json.JSONDecodeError:
        return secret_value
    if isinstance(secret_json, dict):
        return secret_json.get(json_field) or ""
    return secret_value


def _resolve_secret(env_name: str, arn_env_name: str, json_field: str) -> Optional[str]:
    value = os.environ.get(env_name)
    if value:
        return value
    secret_arn = os.environ.get(arn_env_name)
    if secret_arn:
        return _read_secret(secret_arn, json_field, env_name) or None
    return None


def load_config(require_webhook_secret: bool = True) -> BillingConfig:
    """
    Build the billing configuration from the environment.

    Args:
        require_webhook_secret: The webhook needs the signing secret, the
            browser-facing endpoints do not.

    Returns:
        BillingConfig

    Raises:
        ConfigurationError: a required option is missing or unreadable
    """
    missing = []

    stripe_api_key = _resolve_secret("STRIPE_SECRET_KEY", "STRIPE_SECRET_ARN", "key")
    if not stripe_api_key:
        missing.append("STRIPE_SECRET_KEY")

    webhook_secret = _resolve_secret("STRIPE_WEBHOOK_SECRET", "STRIPE_WEBHOOK_SECRET_ARN", "secret")
    if require_webhook_secret and not webhook_secret:
        missing.append("STRIPE_WEBHOOK_SECRET")

    users_table = os.environ.get("USERS_TABLE")
    if not users_table:
        missing.append("USERS_TABLE")

    if missing:
        raise ConfigurationError(missing)

    tolerance_raw = os.environ.get("STRIPE_WEBHOOK_TOLERANCE_SECONDS") or str(DEFAULT_WEBHOOK_TOLERANCE_SECONDS)
    try:
        tolerance = int(tolerance_raw)
    except ValueError as e:
        raise ConfigurationError(
            ["STRIPE_WEBHOOK_TOLERANCE_SECONDS"],
            "STRIPE_WEBHOOK_TOLERANCE_SECONDS must be an integer",
        ) from e
    if tolerance <= 0:
        raise ConfigurationError(
            ["STRIPE_WEBHOOK_TOLERANCE_SECONDS"],
            "STRIPE_WEBHOOK_TOLERANCE_SECONDS must be a positive integer",
        )

    return BillingConfig(
        stripe_api_key=stripe_api_key,
        users_table=users_table,
        webhook_secret=webhook_secret,
        user_id_metadata_key=os.environ.get("CUSTOMER_USER_ID_METADATA_KEY") or DEFAULT_USER_ID_METADATA_KEY,
        webhook_tolerance_seconds=tolerance,
        base_url=(os.environ.get("BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
    )

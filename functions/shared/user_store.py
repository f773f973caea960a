"""
DynamoDB helpers for user documents.

A user document is one item keyed by the internal user id. The
subscription lives on it as the embedded ``subscription`` map and is only
ever replaced or removed as a whole.
"""

import asyncio
import logging
import time
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from shared.error_classification import classify_error
from shared.errors import TransientDependencyError, UserNotFoundError
from shared.logging_utils import log_external_call
from shared.types import SubscriptionItem

logger = logging.getLogger(__name__)

SERVICE_NAME = "dynamodb"
SUBSCRIPTION_ATTRIBUTE = "subscription"


def _is_conditional_check_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class UserStore:
    """Reads and field-level writes against the users table."""

    def __init__(self, table):
        self._table = table

    @classmethod
    def from_table_name(cls, dynamodb, table_name: str) -> "UserStore":
        return cls(dynamodb.Table(table_name))

    async def _call(self, operation: str, func, **kwargs) -> Any:
        start = time.monotonic()
        try:
            result = await asyncio.to_thread(func, **kwargs)
        except ClientError as e:
            latency_ms = (time.monotonic() - start) * 1000
            if _is_conditional_check_failure(e):
                log_external_call(logger, SERVICE_NAME, operation, True, latency_ms, "ConditionalCheckFailed")
                raise
            log_external_call(logger, SERVICE_NAME, operation, False, latency_ms, type(e).__name__)
            if classify_error(e) == "transient":
                raise TransientDependencyError(SERVICE_NAME, operation, e) from e
            raise
        except BotoCoreError as e:
            log_external_call(
                logger, SERVICE_NAME, operation, False, (time.monotonic() - start) * 1000, type(e).__name__
            )
            if classify_error(e) == "transient":
                raise TransientDependencyError(SERVICE_NAME, operation, e) from e
            raise
        log_external_call(logger, SERVICE_NAME, operation, True, (time.monotonic() - start) * 1000)
        return result

    async def get_user(self, user_id: str) -> Optional[dict]:
        """Fetch a user document, or None if it does not exist."""
        response = await self._call("get_item", self._table.get_item, Key={"pk": user_id})
        return response.get("Item")

    async def set_subscription(self, user_id: str, subscription: SubscriptionItem) -> None:
        """
        Replace the embedded subscription map wholesale.

        Other attributes on the user document are left untouched.

        Raises:
            UserNotFoundError: no document exists for user_id
        """
        try:
            await self._call(
                "update_item",
                self._table.update_item,
                Key={"pk": user_id},
                UpdateExpression="SET #sub = :sub",
                ConditionExpression="attribute_exists(pk)",
                ExpressionAttributeNames={"#sub": SUBSCRIPTION_ATTRIBUTE},
                ExpressionAttributeValues={":sub": dict(subscription)},
            )
        except ClientError as e:
            if _is_conditional_check_failure(e):
                raise UserNotFoundError(user_id) from e
            raise

    async def remove_subscription(self, user_id: str) -> None:
        """
        Delete the embedded subscription map.

        Removing an absent map is a no-op, so repeated deletes converge.

        Raises:
            UserNotFoundError: no document exists for user_id
        """
        try:
            await self._call(
                "update_item",
                self._table.update_item,
                Key={"pk": user_id},
                UpdateExpression="REMOVE #sub",
                ConditionExpression="attribute_exists(pk)",
                ExpressionAttributeNames={"#sub": SUBSCRIPTION_ATTRIBUTE},
            )
        except ClientError as e:
            if _is_conditional_check_failure(e):
                raise UserNotFoundError(user_id) from e
            raise

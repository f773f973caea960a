"""Shared request utilities for API handlers."""

import base64
import binascii
import json
import logging
from typing import Optional
from urllib.parse import urlsplit

from shared.errors import InvalidRequestError

logger = logging.getLogger(__name__)


def get_header(event: dict, name: str) -> Optional[str]:
    """Case-insensitive header lookup on an API Gateway event."""
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def get_origin(event: dict) -> Optional[str]:
    """Extract Origin header from request."""
    return get_header(event, "origin")


def get_method(event: dict) -> str:
    """HTTP method for REST (v1) and HTTP (v2) API Gateway payloads."""
    method = event.get("httpMethod")
    if not method:
        method = (event.get("requestContext") or {}).get("http", {}).get("method", "")
    return method.upper()


def get_raw_body(event: dict) -> bytes:
    """
    Return the request body exactly as sent.

    API Gateway base64-encodes binary bodies; those are decoded back to
    their original bytes. Text bodies are encoded as UTF-8, which is how
    API Gateway decoded them in the first place.
    """
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Request body flagged as base64 but could not be decoded")
            return b""
    if isinstance(body, bytes):
        return body
    return body.encode("utf-8")


def parse_json_body(event: dict) -> dict:
    """
    Parse a JSON object body.

    Raises:
        InvalidRequestError: body is not a JSON object
    """
    raw = get_raw_body(event)
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequestError("Request body must be valid JSON") from e
    if not isinstance(data, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return data


def get_query_param(event: dict, name: str) -> Optional[str]:
    params = event.get("queryStringParameters") or {}
    return params.get(name)


def redirect_base(event: dict, fallback: str) -> str:
    """Base URL for Stripe redirects: the Referer, then Origin, then the site URL."""
    for candidate in (get_header(event, "referer"), get_origin(event)):
        if candidate:
            parsed = urlsplit(candidate)
            if parsed.scheme and parsed.netloc:
                return f"{parsed.scheme}://{parsed.netloc}"
    return fallback.rstrip("/")

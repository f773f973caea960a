# Shared utilities package
from .config import BillingConfig, load_config
from .errors import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    TransientDependencyError,
    UnresolvedUserError,
)
from .response_utils import error_response, success_response

__all__ = [
    "BillingConfig",
    "load_config",
    "APIError",
    "AuthenticationError",
    "ConfigurationError",
    "TransientDependencyError",
    "UnresolvedUserError",
    "error_response",
    "success_response",
]

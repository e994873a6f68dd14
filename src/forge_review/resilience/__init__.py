"""Error taxonomy and retry execution."""

from .errors import (
    ConfigError,
    FatalServiceError,
    ReviewError,
    ServiceError,
    SetupError,
    TransientServiceError,
)
from .retry import RetryableConditions, RetryExecutor, RetryPolicy

__all__ = [
    "ConfigError",
    "FatalServiceError",
    "ReviewError",
    "ServiceError",
    "SetupError",
    "TransientServiceError",
    "RetryableConditions",
    "RetryExecutor",
    "RetryPolicy",
]

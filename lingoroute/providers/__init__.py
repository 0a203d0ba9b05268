"""Provider clients, wire formats, rate limiting, and retry policy."""

from .client import ProviderClient
from .http_client import ProviderHttpClient
from .rate_limiter import (
    RateLimiter,
    TokenBucketRateLimiter,
    TokenBucketState,
    UnlimitedRateLimiter,
    create_rate_limiter,
)
from .retry import RetryDecision, RetryPolicy, parse_retry_after
from .wire import WIRE_FORMATS, WireCall, WireFormat, wire_format_for

__all__ = [
    "ProviderClient",
    "ProviderHttpClient",
    "RateLimiter",
    "RetryDecision",
    "RetryPolicy",
    "TokenBucketRateLimiter",
    "TokenBucketState",
    "UnlimitedRateLimiter",
    "WIRE_FORMATS",
    "WireCall",
    "WireFormat",
    "create_rate_limiter",
    "parse_retry_after",
    "wire_format_for",
]

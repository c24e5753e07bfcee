"""Marketplace clients with rate limiting and resilience patterns."""

from .circuit_breaker import CircuitBreaker, CircuitState
from .ebay_client import EbayFindingClient
from .http_client import AsyncHTTPClient
from .rate_limiter import RateLimiter
from .rockauto_client import RockAutoCatalogClient

__all__ = [
    "AsyncHTTPClient",
    "CircuitBreaker",
    "CircuitState",
    "EbayFindingClient",
    "RateLimiter",
    "RockAutoCatalogClient",
]

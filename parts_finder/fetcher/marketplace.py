"""Shared request guard for marketplace clients."""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx

from parts_finder.fetcher.circuit_breaker import CircuitBreaker, CircuitState
from parts_finder.fetcher.http_client import AsyncHTTPClient
from parts_finder.fetcher.rate_limiter import RateLimiter


class MarketplaceClient:
    """
    Base class for clients of untrusted, rate-limited marketplaces.

    Responsibilities:
    - Skip the call when the source's circuit is open or its rate budget is spent
    - Bound every call with a wall-clock timeout
    - Classify failures for the circuit breaker (429/5xx/timeouts are retryable)
    - Turn every failure into ``None`` so callers see "no listings", never an error
    """

    source = "marketplace"

    def __init__(
        self,
        http_client: AsyncHTTPClient,
        rate_limiter: Optional[RateLimiter] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        call_timeout: float = 10.0,
        rate_limit_max_wait: float = 2.0,
        retryable_status_codes=(429, 502, 503, 504),
        logger=None,
    ):
        """
        Args:
            http_client: Shared async HTTP client
            rate_limiter: Optional per-source token bucket
            circuit_breaker: Optional per-source circuit breaker
            call_timeout: Wall-clock limit for one request, in seconds
            rate_limit_max_wait: Longest wait for a rate-limit token
            retryable_status_codes: Statuses counted toward opening the circuit
            logger: Optional structured logger
        """
        self.http_client = http_client
        self.rate_limiter = rate_limiter
        self.circuit_breaker = circuit_breaker
        self.call_timeout = call_timeout
        self.rate_limit_max_wait = rate_limit_max_wait
        self.retryable_status_codes = frozenset(retryable_status_codes)
        self.logger = logger

    async def _call(self, send: Callable[[], Awaitable[httpx.Response]]) -> Optional[Any]:
        """
        Send one guarded request and decode its JSON body.

        Args:
            send: Zero-argument coroutine factory performing the HTTP request

        Returns:
            Decoded JSON payload, or None if the call was skipped or failed
        """
        if self.circuit_breaker:
            if not self.circuit_breaker.allow(self.source):
                self._skipped("circuit_open")
                return None
            holds_probe = self.circuit_breaker.state(self.source) is CircuitState.HALF_OPEN
        else:
            holds_probe = False

        try:
            return await self._attempt(send)
        finally:
            # Recorded outcomes already cleared the probe; this covers cancellation
            # and skips so a half-open circuit never stays blocked.
            if holds_probe:
                self.circuit_breaker.release_probe(self.source)

    async def _attempt(self, send: Callable[[], Awaitable[httpx.Response]]) -> Optional[Any]:
        if self.rate_limiter and not await self.rate_limiter.try_acquire(
            self.source, self.rate_limit_max_wait
        ):
            self._skipped("rate_limited")
            return None

        loop = asyncio.get_running_loop()
        start = loop.time()

        try:
            response = await asyncio.wait_for(send(), timeout=self.call_timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            self._failed(status_code, str(e), retryable=status_code in self.retryable_status_codes)
            return None
        except (httpx.TimeoutException, asyncio.TimeoutError):
            self._failed(None, "timeout", retryable=True)
            return None
        except httpx.HTTPError as e:
            # Connection refused, DNS failure, protocol errors
            self._failed(None, str(e) or type(e).__name__, retryable=True)
            return None
        except ValueError as e:
            # 200 OK with a body that is not JSON
            self._failed(None, f"invalid json: {e}", retryable=False)
            return None
        except Exception as e:
            self._failed(None, repr(e), retryable=False)
            return None

        if self.circuit_breaker:
            self.circuit_breaker.record_success(self.source)
        if self.logger:
            self.logger.marketplace_success(
                source=self.source,
                elapsed_ms=(loop.time() - start) * 1000,
            )
        return data

    def _skipped(self, reason: str) -> None:
        if self.logger:
            self.logger.marketplace_skipped(source=self.source, reason=reason)

    def _failed(self, status: Optional[int], error: str, retryable: bool) -> None:
        if self.circuit_breaker:
            self.circuit_breaker.record_failure(self.source, retryable=retryable)
        if self.logger:
            self.logger.marketplace_error(source=self.source, status=status, error=error)

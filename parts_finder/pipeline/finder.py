"""Application-level wiring of the parts search components."""

from typing import Iterable, List, Optional, Union

import httpx

from parts_finder.fetcher.circuit_breaker import CircuitBreaker
from parts_finder.fetcher.ebay_client import EbayFindingClient
from parts_finder.fetcher.http_client import AsyncHTTPClient
from parts_finder.fetcher.rate_limiter import RateLimiter
from parts_finder.fetcher.rockauto_client import RockAutoCatalogClient
from parts_finder.models.clock import Clock
from parts_finder.models.config import FinderConfig
from parts_finder.models.data_models import BatchOutcome, PartSearchResult
from parts_finder.monitoring.logger import StructuredLogger
from parts_finder.pipeline.cache import CacheStore, PartsCacheCoordinator
from parts_finder.pipeline.orchestrator import (
    BatchOrchestrator,
    DamageInput,
    Deadline,
    as_damage_item,
    build_degraded_results,
)
from parts_finder.pipeline.resolver import PartPriceResolver


class PartsFinder:
    """
    Long-lived parts search service.

    Created once at application start; owns the HTTP client, the upstream
    guards, the cache and the in-flight registry. Use as an async context
    manager (or call ``start``/``close``) so the HTTP client is released.
    """

    def __init__(
        self,
        config: Optional[FinderConfig] = None,
        store: Optional[CacheStore] = None,
        clock: Optional[Clock] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Args:
            config: Finder configuration; defaults plus environment when omitted
            store: Cache store; in-memory by default
            clock: Clock for cache expiry; wall clock by default
            transport: Optional httpx transport (tests route this to the mock marketplace)
            logger: Structured logger; one is created at the configured level when omitted
        """
        self.config = config or FinderConfig.from_env()
        self.logger = logger or StructuredLogger(level=self.config.log_level)

        self.http_client = AsyncHTTPClient(
            connect_timeout=self.config.connect_timeout,
            request_timeout=self.config.marketplace_timeout,
            transport=transport,
        )
        rate_limiter = RateLimiter(
            max_tokens=self.config.rate_limit_tokens,
            refill_rate=self.config.max_requests_per_second,
        )
        circuit_breaker = CircuitBreaker(
            failure_threshold=self.config.circuit_breaker_failure_threshold,
            cooldown_seconds=self.config.circuit_breaker_cooldown,
            logger=self.logger,
        )

        self.marketplace = EbayFindingClient.from_config(
            self.config, self.http_client, rate_limiter, circuit_breaker, self.logger
        )
        self.catalog_client = None
        if self.config.rockauto_api_enabled:
            self.catalog_client = RockAutoCatalogClient.from_config(
                self.config, self.http_client, rate_limiter, circuit_breaker, self.logger
            )

        self.resolver = PartPriceResolver.from_config(
            self.config, self.marketplace, self.catalog_client, self.logger
        )
        self.coordinator = PartsCacheCoordinator(
            self.resolver, store=store, clock=clock, logger=self.logger
        )
        self.orchestrator = BatchOrchestrator(
            self.coordinator, batch_size=self.config.batch_size, logger=self.logger
        )

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        await self.http_client.open()

    async def close(self) -> None:
        await self.http_client.aclose()

    async def find_parts(
        self,
        part_name: str,
        year: Union[str, int],
        make: str,
        model: str,
        damage_id: str,
    ) -> PartSearchResult:
        return await self.coordinator.find_parts(part_name, year, make, model, damage_id)

    async def find_all_parts(
        self,
        damages: Iterable[DamageInput],
        year: Union[str, int],
        make: str,
        model: str,
    ) -> List[PartSearchResult]:
        return await self.orchestrator.find_all_parts(damages, year, make, model)

    async def search(
        self,
        damages: Iterable[DamageInput],
        year: Union[str, int],
        make: str,
        model: str,
        deadline: Optional[Deadline] = None,
    ) -> BatchOutcome:
        """
        Batch search bounded by ``deadline`` (``batch_timeout`` seconds by default).

        On timeout the outcome is still ``timed_out`` but carries estimate-only
        results for every requested part, so callers always have something to show.
        """
        items = [as_damage_item(damage) for damage in damages]
        deadline = deadline or Deadline(self.config.batch_timeout)

        outcome = await self.orchestrator.find_all_parts_within(items, year, make, model, deadline)
        if outcome.timed_out:
            outcome.results = build_degraded_results(
                items, year, make, model, self.config.default_estimated_price
            )
        return outcome

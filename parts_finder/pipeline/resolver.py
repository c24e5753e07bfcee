"""Per-part price resolution: live quote + catalog fallback merged into one result."""

import asyncio
from dataclasses import replace
from typing import List, Optional, Sequence, Union

from parts_finder.fetcher.ebay_client import ebay_search_url, search_keywords
from parts_finder.models.config import ESTIMATE_TTL_SECONDS, LIVE_TTL_SECONDS
from parts_finder.models.data_models import (
    Availability,
    Condition,
    Confidence,
    PartListing,
    PartOffer,
    PartSearchResult,
    PriceQuote,
    PriceSource,
)
from parts_finder.processor.aggregator import aggregate
from parts_finder.processor.catalog import DEFAULT_ESTIMATED_PRICE, build_fallback

Year = Union[str, int]


def listing_to_offer(listing: PartListing, confidence: Optional[Confidence] = None) -> PartOffer:
    """Convert a marketplace listing into a live-priced offer."""
    return PartOffer(
        id=listing.identifier,
        name=listing.title,
        price=round(listing.landed_price, 2),
        price_source=PriceSource.LIVE,
        vendor=listing.vendor,
        url=listing.source_url,
        shipping=listing.shipping_cost,
        availability=listing.availability,
        condition=listing.condition,
        confidence=confidence,
        image_url=listing.image_url,
        affiliate_url=listing.affiliate_url,
        warranty=listing.warranty,
    )


def market_price_offer(
    quote: PriceQuote,
    part_name: str,
    damage_id: str,
    search_url: str,
) -> PartOffer:
    """Summary card carrying the live median price."""
    return PartOffer(
        id=f"ebay-median-{damage_id}",
        name=f"{part_name} - eBay Market Price",
        price=round(quote.median_price, 2),
        price_source=PriceSource.LIVE,
        vendor="ebay",
        url=search_url,
        shipping=0.0,
        availability=Availability.IN_STOCK,
        condition=Condition.NEW,
        confidence=quote.confidence,
        note=f"Median of {len(quote.listings)} listings after filtering junk",
    )


def rank_offers(offers: Sequence[PartOffer]) -> List[PartOffer]:
    """Priced offers, live before estimated, ascending by price; ties keep input order."""
    priced = [offer for offer in offers if offer.price > 0]
    return sorted(priced, key=lambda offer: (offer.price_source is not PriceSource.LIVE, offer.price))


def select_cheapest(offers: Sequence[PartOffer]) -> Optional[PartOffer]:
    ranked = rank_offers(offers)
    return ranked[0] if ranked else None


def select_fastest(offers: Sequence[PartOffer]) -> Optional[PartOffer]:
    return next(
        (offer for offer in rank_offers(offers) if offer.availability is Availability.IN_STOCK),
        None,
    )


def assemble_result(
    part_name: str,
    damage_id: str,
    quote: PriceQuote,
    fallback: PartOffer,
    search_url: str,
    catalog_listings: Sequence[PartListing] = (),
    max_listings: int = 5,
) -> PartSearchResult:
    """
    Merge a live quote and the catalog fallback into the result set.

    Order: market-price card (only with live data), catalog fallback, up to
    ``max_listings`` live listings, then up to ``max_listings`` catalog API
    listings when present.
    """
    offers: List[PartOffer] = []

    if quote.has_data:
        offers.append(market_price_offer(quote, part_name, damage_id, search_url))

    offers.append(fallback)

    offers.extend(
        listing_to_offer(listing, quote.confidence)
        for listing in quote.listings[:max_listings]
    )

    catalog_sorted = sorted(catalog_listings, key=lambda listing: listing.landed_price)
    offers.extend(listing_to_offer(listing) for listing in catalog_sorted[:max_listings])

    return PartSearchResult(
        part_name=part_name,
        damage_id=damage_id,
        results=offers,
        cheapest=select_cheapest(offers),
        fastest=select_fastest(offers),
        cached=False,
        live_median_price=round(quote.median_price, 2) if quote.has_data else None,
        live_confidence=quote.confidence if quote.has_data else None,
    )


def fallback_only_result(
    part_name: str,
    damage_id: str,
    year: Year,
    make: str,
    model: str,
    default_price: float = DEFAULT_ESTIMATED_PRICE,
) -> PartSearchResult:
    """Estimate-only result used when live data is unavailable or not awaited."""
    return assemble_result(
        part_name,
        damage_id,
        PriceQuote(median_price=0.0, confidence=Confidence.LOW),
        build_fallback(part_name, year, make, model, default_price),
        search_url=ebay_search_url(search_keywords(part_name, year, make, model)),
    )


def _rebind_offer_id(offer_id: str, old_damage_id: str, damage_id: str) -> str:
    for prefix in ("ebay-median-", "rockauto-api-"):
        scoped = f"{prefix}{old_damage_id}"
        if offer_id == scoped or offer_id.startswith(scoped + "-"):
            return f"{prefix}{damage_id}{offer_id[len(scoped):]}"
    return offer_id


def rebind_result(result: PartSearchResult, damage_id: str, cached: bool) -> PartSearchResult:
    """
    Copy a shared result for one caller.

    Offer ids scoped to the damage id that produced the result are rewritten
    for ``damage_id``, and the copy owns its results list, so callers sharing
    a cache entry or an in-flight fetch never see each other's mutations.
    """
    copies = {}
    results = []
    for offer in result.results:
        copy = replace(offer, id=_rebind_offer_id(offer.id, result.damage_id, damage_id))
        copies[id(offer)] = copy
        results.append(copy)

    def repoint(offer: Optional[PartOffer]) -> Optional[PartOffer]:
        if offer is None:
            return None
        return copies.get(id(offer)) or replace(
            offer, id=_rebind_offer_id(offer.id, result.damage_id, damage_id)
        )

    return replace(
        result,
        damage_id=damage_id,
        results=results,
        cheapest=repoint(result.cheapest),
        fastest=repoint(result.fastest),
        cached=cached,
    )


class PartPriceResolver:
    """
    Resolves one damaged part to a priced result set.

    Never raises: marketplace failures become "no live listings", and any
    unexpected defect degrades to the catalog-fallback-only result.
    """

    def __init__(
        self,
        marketplace,
        catalog_client=None,
        max_listings: int = 5,
        default_estimated_price: float = DEFAULT_ESTIMATED_PRICE,
        live_ttl_seconds: float = LIVE_TTL_SECONDS,
        estimate_ttl_seconds: float = ESTIMATE_TTL_SECONDS,
        logger=None,
    ):
        """
        Args:
            marketplace: Live listings source with ``async search(part_name, year, make, model)``
            catalog_client: Optional source with ``async search(damage_id, part_name, year, make, model)``
            max_listings: Individual listings surfaced per source
            default_estimated_price: Fallback price for parts missing from the table
            live_ttl_seconds: Cache TTL for results with a live median
            estimate_ttl_seconds: Cache TTL for estimate-only results
            logger: Optional structured logger
        """
        self.marketplace = marketplace
        self.catalog_client = catalog_client
        self.max_listings = max_listings
        self.default_estimated_price = default_estimated_price
        self.live_ttl_seconds = live_ttl_seconds
        self.estimate_ttl_seconds = estimate_ttl_seconds
        self.logger = logger

    @classmethod
    def from_config(cls, config, marketplace, catalog_client=None, logger=None):
        return cls(
            marketplace,
            catalog_client=catalog_client,
            max_listings=config.max_listings_shown,
            default_estimated_price=config.default_estimated_price,
            live_ttl_seconds=config.live_ttl_seconds,
            estimate_ttl_seconds=config.estimate_ttl_seconds,
            logger=logger,
        )

    def ttl_for(self, result: PartSearchResult) -> float:
        """12 hours for results with live data, 7 days for estimate-only results."""
        if result.live_median_price:
            return self.live_ttl_seconds
        return self.estimate_ttl_seconds

    async def resolve(
        self,
        part_name: str,
        year: Year,
        make: str,
        model: str,
        damage_id: str,
    ) -> PartSearchResult:
        """Resolve prices for one part; always returns a result with at least the fallback entry."""
        try:
            live, catalog = await asyncio.gather(
                self._live_listings(part_name, year, make, model),
                self._catalog_listings(damage_id, part_name, year, make, model),
            )
            result = assemble_result(
                part_name,
                damage_id,
                aggregate(live),
                build_fallback(part_name, year, make, model, self.default_estimated_price),
                search_url=ebay_search_url(search_keywords(part_name, year, make, model)),
                catalog_listings=catalog,
                max_listings=self.max_listings,
            )
        except Exception as e:
            if self.logger:
                self.logger.log("resolver_error", part=part_name, error=repr(e))
            return fallback_only_result(
                part_name, damage_id, year, make, model, self.default_estimated_price
            )

        if self.logger:
            self.logger.log(
                "part_resolved",
                part=part_name,
                live_median=result.live_median_price,
                offers=len(result.results),
            )
        return result

    async def _live_listings(self, part_name: str, year: Year, make: str, model: str) -> List[PartListing]:
        try:
            return await self.marketplace.search(part_name, year, make, model)
        except Exception as e:
            if self.logger:
                self.logger.marketplace_error(source="marketplace", status=None, error=repr(e))
            return []

    async def _catalog_listings(
        self, damage_id: str, part_name: str, year: Year, make: str, model: str
    ) -> List[PartListing]:
        if self.catalog_client is None:
            return []
        try:
            return await self.catalog_client.search(damage_id, part_name, year, make, model)
        except Exception as e:
            if self.logger:
                self.logger.marketplace_error(source="catalog", status=None, error=repr(e))
            return []

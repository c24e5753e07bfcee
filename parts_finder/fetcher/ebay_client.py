"""eBay Finding API client returning normalized part listings."""

from typing import Dict, List, Union
from urllib.parse import quote_plus

from parts_finder.fetcher.marketplace import MarketplaceClient
from parts_finder.models.data_models import PartListing
from parts_finder.processor.normalizer import normalize_ebay_response

EBAY_SEARCH_URL = "https://www.ebay.com/sch/i.html"


def search_keywords(part_name: str, year: Union[str, int], make: str, model: str) -> str:
    return f"{year} {make} {model} {part_name}".strip()


def ebay_search_url(keywords: str, category_id: str = "6030") -> str:
    """Public eBay search page for the keywords (used as the market-price card link)."""
    return f"{EBAY_SEARCH_URL}?_nkw={quote_plus(keywords)}&_sacat={category_id}"


class EbayFindingClient(MarketplaceClient):
    """
    Client for the eBay Finding API ``findItemsByKeywords`` operation.

    Without an app id the client is unconfigured and every search returns an
    empty list without touching the network.
    """

    source = "ebay"

    def __init__(
        self,
        http_client,
        app_id: str = "",
        affiliate_id: str = "",
        campaign_id: str = "",
        endpoint: str = "https://svcs.ebay.com/services/search/FindingService/v1",
        category_id: str = "6030",
        entries_per_page: int = 20,
        **guards,
    ):
        super().__init__(http_client, **guards)
        self.app_id = app_id
        self.affiliate_id = affiliate_id
        self.campaign_id = campaign_id
        self.endpoint = endpoint
        self.category_id = category_id
        self.entries_per_page = entries_per_page

    @classmethod
    def from_config(cls, config, http_client, rate_limiter=None, circuit_breaker=None, logger=None):
        return cls(
            http_client,
            app_id=config.ebay_app_id,
            affiliate_id=config.ebay_affiliate_id,
            campaign_id=config.ebay_campaign_id,
            endpoint=config.ebay_endpoint,
            category_id=config.ebay_category_id,
            entries_per_page=config.ebay_entries_per_page,
            rate_limiter=rate_limiter,
            circuit_breaker=circuit_breaker,
            call_timeout=config.marketplace_timeout,
            rate_limit_max_wait=config.rate_limit_max_wait,
            logger=logger,
        )

    @property
    def configured(self) -> bool:
        return bool(self.app_id)

    def build_params(self, keywords: str) -> Dict[str, str]:
        """Query parameters for a lowest-price-plus-shipping keyword search."""
        params = {
            "OPERATION-NAME": "findItemsByKeywords",
            "SERVICE-VERSION": "1.0.0",
            "SECURITY-APPNAME": self.app_id,
            "RESPONSE-DATA-FORMAT": "JSON",
            "REST-PAYLOAD": "true",
            "keywords": keywords,
            "categoryId": self.category_id,
            "sortOrder": "PricePlusShippingLowest",
            "paginationInput.entriesPerPage": str(self.entries_per_page),
        }
        if self.affiliate_id:
            params["affiliate.networkId"] = "9"
            params["affiliate.trackingId"] = self.affiliate_id
            params["affiliate.customId"] = self.campaign_id or "autoflip"
        return params

    async def search(
        self,
        part_name: str,
        year: Union[str, int],
        make: str,
        model: str,
    ) -> List[PartListing]:
        """
        Search listings for a part on a specific vehicle.

        Returns:
            Normalized listings (unfiltered); empty on any failure or when unconfigured
        """
        if not self.configured:
            self._skipped("unconfigured")
            return []

        keywords = search_keywords(part_name, year, make, model)
        if self.logger:
            self.logger.marketplace_request(source=self.source, keywords=keywords)

        data = await self._call(
            lambda: self.http_client.get(self.endpoint, params=self.build_params(keywords))
        )
        if data is None:
            return []

        try:
            listings = normalize_ebay_response(data, self.affiliate_id, self.campaign_id)
        except (ValueError, TypeError, AttributeError) as e:
            self._failed(None, f"malformed payload: {e}", retryable=False)
            return []

        if self.logger:
            self.logger.listings_parsed(source=self.source, count=len(listings))
        return listings

    def search_url(self, part_name: str, year: Union[str, int], make: str, model: str) -> str:
        return ebay_search_url(search_keywords(part_name, year, make, model), self.category_id)

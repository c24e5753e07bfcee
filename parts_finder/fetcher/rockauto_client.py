"""Optional structured catalog API client (best-effort enrichment).

Disabled by default. When enabled, its listings are appended to a part's
result set as live prices; any failure simply contributes nothing and the
static browse entry remains.
"""

from typing import List, Union

from parts_finder.fetcher.marketplace import MarketplaceClient
from parts_finder.models.data_models import PartListing
from parts_finder.processor.catalog import catalog_url
from parts_finder.processor.normalizer import normalize_rockauto_part

# Damage taxonomy ids mapped to catalog API categories; anything else is "body"
CATEGORY_BY_DAMAGE = {
    "front_bumper_cracked": "body",
    "hood_dented": "body",
    "headlight_broken": "lighting",
    "door_dented": "body",
    "fender_damaged": "body",
    "mirror_broken": "body",
    "windshield_cracked": "glass",
    "grille_damaged": "body",
    "quarter_panel_dented": "body",
    "rear_bumper_cracked": "body",
}


class RockAutoCatalogClient(MarketplaceClient):
    """Client for a JSON catalog API exposing RockAuto prices."""

    source = "rockauto"

    def __init__(self, http_client, api_url: str, **guards):
        super().__init__(http_client, **guards)
        self.api_url = api_url.rstrip("/")

    @classmethod
    def from_config(cls, config, http_client, rate_limiter=None, circuit_breaker=None, logger=None):
        return cls(
            http_client,
            api_url=config.rockauto_api_url,
            rate_limiter=rate_limiter,
            circuit_breaker=circuit_breaker,
            call_timeout=config.marketplace_timeout,
            rate_limit_max_wait=config.rate_limit_max_wait,
            logger=logger,
        )

    async def search(
        self,
        damage_id: str,
        part_name: str,
        year: Union[str, int],
        make: str,
        model: str,
    ) -> List[PartListing]:
        """Fetch catalog parts for the vehicle; empty on any failure or a non-numeric year."""
        try:
            year_num = int(str(year).strip())
        except ValueError:
            self._skipped("invalid_year")
            return []

        body = {
            "make": make,
            "year": year_num,
            "model": model,
            "category": CATEGORY_BY_DAMAGE.get(damage_id, "body"),
        }
        data = await self._call(lambda: self.http_client.post(f"{self.api_url}/parts", json=body))
        if not isinstance(data, dict):
            return []

        fallback_url = catalog_url(part_name, year, make, model)
        listings = []
        for index, raw_part in enumerate(data.get("parts") or []):
            listing = normalize_rockauto_part(raw_part, index, damage_id, part_name, fallback_url)
            if listing is not None:
                listings.append(listing)
        return listings

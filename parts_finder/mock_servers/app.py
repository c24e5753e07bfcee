"""FastAPI mock marketplace for exercising the parts finder end to end.

Serves the eBay Finding API ``findItemsByKeywords`` JSON shape and a
RockAuto-style catalog API, with configurable listings, error injection and
latency. ``app.state.requests`` records every search for assertions.
"""

import asyncio
import os
import random
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request

FINDING_PATH = "/services/search/FindingService/v1"

_TITLE_SUFFIXES = ["OEM", "Aftermarket", "New", "CAPA Certified", "Replacement"]


def ebay_item(
    item_id: str,
    title: str,
    price: float,
    shipping: Optional[float] = 0.0,
    condition: str = "New",
    view_url: Optional[str] = None,
) -> Dict:
    """Build one item in the Finding API's list-wrapped JSON shape."""
    item = {
        "itemId": [item_id],
        "title": [title],
        "viewItemURL": [view_url or f"https://www.ebay.com/itm/{item_id}"],
        "galleryURL": [f"https://i.ebayimg.com/thumbs/{item_id}.jpg"],
        "sellingStatus": [{"currentPrice": [{"@currencyId": "USD", "__value__": f"{price:.2f}"}]}],
        "condition": [{"conditionDisplayName": [condition]}],
    }
    if shipping is not None:
        item["shippingInfo"] = [
            {"shippingServiceCost": [{"@currencyId": "USD", "__value__": f"{shipping:.2f}"}]}
        ]
    return item


def finding_response(items: List[Dict], ack: str = "Success") -> Dict:
    """Wrap items in a ``findItemsByKeywordsResponse`` envelope."""
    return {
        "findItemsByKeywordsResponse": [
            {
                "ack": [ack],
                "searchResult": [{"@count": str(len(items)), "item": items}],
            }
        ]
    }


def generate_items(keywords: str, count: int, rng: random.Random) -> List[Dict]:
    """Deterministic pseudo-random listings for a keyword search."""
    items = []
    for _ in range(count):
        price = round(rng.uniform(40.0, 400.0), 2)
        shipping = rng.choice([0.0, 0.0, 9.99, 19.99])
        title = f"{keywords} {rng.choice(_TITLE_SUFFIXES)}"
        items.append(ebay_item(str(rng.randrange(10**11, 10**12)), title, price, shipping))
    return items


def create_mock_marketplace(
    items: Optional[List[Dict]] = None,
    items_per_search: int = 8,
    random_seed: Optional[int] = None,
    error_rate: float = 0.0,
    error_status: Optional[int] = None,
    extra_latency_ms: int = 0,
    catalog_parts: Optional[List[Dict]] = None,
) -> FastAPI:
    """
    Create a mock marketplace app.

    Args:
        items: Fixed Finding API items returned for every search; generated per keyword when None
        items_per_search: Generated items per search when ``items`` is None
        random_seed: Seed for deterministic generated prices and errors
        error_rate: Probability of a random 5xx response (0.0-1.0)
        error_status: Always respond with this HTTP status when set
        extra_latency_ms: Added latency per request in milliseconds
        catalog_parts: Parts returned by the catalog API

    Returns:
        FastAPI application
    """
    app = FastAPI(title="Mock Marketplace")
    rng = random.Random(random_seed)
    app.state.requests = []

    async def _simulate_upstream() -> None:
        if extra_latency_ms > 0:
            await asyncio.sleep(extra_latency_ms / 1000.0)
        if error_status is not None:
            raise HTTPException(status_code=error_status, detail="Simulated error")
        if rng.random() < error_rate:
            raise HTTPException(status_code=rng.choice([500, 502, 503]), detail="Simulated error")

    @app.get(FINDING_PATH)
    async def find_items(request: Request):
        """Finding API ``findItemsByKeywords``."""
        params = dict(request.query_params)
        app.state.requests.append(params)
        await _simulate_upstream()

        if params.get("OPERATION-NAME") != "findItemsByKeywords":
            raise HTTPException(status_code=400, detail="Unsupported operation")
        if not params.get("SECURITY-APPNAME"):
            return finding_response([], ack="Failure")

        keywords = params.get("keywords", "")
        found = items if items is not None else generate_items(keywords, items_per_search, rng)
        return finding_response(found)

    @app.post("/parts")
    async def catalog_parts_endpoint(request: Request):
        """Catalog API part lookup."""
        app.state.requests.append(await request.json())
        await _simulate_upstream()
        return {"parts": catalog_parts or []}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "server": "mock-marketplace"}

    return app


def create_app() -> FastAPI:
    """
    Factory function for uvicorn --factory.

    Reads RANDOM_SEED, ERROR_RATE, EXTRA_LATENCY_MS and ITEMS_PER_SEARCH from the environment.
    """
    return create_mock_marketplace(
        items_per_search=int(os.getenv("ITEMS_PER_SEARCH", 8)),
        random_seed=int(os.getenv("RANDOM_SEED", 42)),
        error_rate=float(os.getenv("ERROR_RATE", 0.0)),
        extra_latency_ms=int(os.getenv("EXTRA_LATENCY_MS", 0)),
    )

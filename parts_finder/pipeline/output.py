"""JSON output formatting for parts search results.

Produces the response shape consumed by the presentation layer: one entry per
part with its ranked offers and the ``cheapest``/``fastest`` selections, plus a
batch summary computed from the returned array.

Example output structure:
{
    "results": [
        {
            "part_name": "front bumper",
            "damage_id": "front_bumper_cracked",
            "results": [...],
            "cheapest": {...},
            "fastest": {...},
            "cached": false,
            "ebay_median": 105.0,
            "ebay_confidence": "high"
        }
    ],
    "summary": {
        "total_parts": 1,
        "parts_with_pricing": 1,
        "parts_with_live_price": 1,
        "total_cheapest": 80.0,
        "cached_count": 0,
        "degraded": false
    },
    "timed_out": false
}
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from parts_finder.models.data_models import (
    BatchOutcome,
    PartOffer,
    PartSearchResult,
    PartsSummary,
)


class JSONOutputFormatter:
    """Formats search results as JSON-serializable dictionaries."""

    def format_offer(self, offer: Optional[PartOffer]) -> Optional[Dict[str, Any]]:
        if offer is None:
            return None
        data = {
            "id": offer.id,
            "name": offer.name,
            "price": offer.price,
            "price_source": offer.price_source.value,
            "vendor": offer.vendor,
            "url": offer.url,
            "shipping": offer.shipping,
            "availability": offer.availability.value,
            "condition": offer.condition.value,
        }
        optional = {
            "confidence": offer.confidence.value if offer.confidence else None,
            "note": offer.note,
            "image_url": offer.image_url,
            "affiliate_url": offer.affiliate_url,
            "warranty": offer.warranty,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    def format_result(self, result: PartSearchResult) -> Dict[str, Any]:
        """Format one part's result; live-price fields are omitted when absent."""
        data = {
            "part_name": result.part_name,
            "damage_id": result.damage_id,
            "results": [self.format_offer(offer) for offer in result.results],
            "cheapest": self.format_offer(result.cheapest),
            "fastest": self.format_offer(result.fastest),
            "cached": result.cached,
        }
        if result.live_median_price is not None:
            data["ebay_median"] = result.live_median_price
        if result.live_confidence is not None:
            data["ebay_confidence"] = result.live_confidence.value
        return data

    def summarize(self, results: Sequence[PartSearchResult], degraded: bool = False) -> PartsSummary:
        """Totals over a batch of results."""
        total_cheapest = sum(r.cheapest.price for r in results if r.cheapest)
        return PartsSummary(
            total_parts=len(results),
            parts_with_pricing=sum(1 for r in results if r.cheapest and r.cheapest.price > 0),
            parts_with_live_price=sum(1 for r in results if r.live_median_price),
            total_cheapest=round(total_cheapest, 2),
            cached_count=sum(1 for r in results if r.cached),
            degraded=degraded,
        )

    def format_summary(self, summary: PartsSummary) -> Dict[str, Any]:
        return {
            "total_parts": summary.total_parts,
            "parts_with_pricing": summary.parts_with_pricing,
            "parts_with_live_price": summary.parts_with_live_price,
            "total_cheapest": summary.total_cheapest,
            "cached_count": summary.cached_count,
            "degraded": summary.degraded,
        }

    def format(self, outcome: BatchOutcome) -> Dict[str, Any]:
        """Format a batch outcome with its summary."""
        summary = self.summarize(outcome.results, degraded=outcome.timed_out)
        return {
            "results": [self.format_result(result) for result in outcome.results],
            "summary": self.format_summary(summary),
            "timed_out": outcome.timed_out,
        }

    def save(self, outcome: BatchOutcome, path: str = "out/parts.json") -> None:
        """
        Save formatted outcome to a JSON file.

        Creates parent directories if they don't exist.

        Args:
            outcome: Batch outcome to save
            path: Output file path
        """
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.format(outcome), f, indent=2, ensure_ascii=False)

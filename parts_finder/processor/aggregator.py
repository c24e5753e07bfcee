"""Price aggregation over live marketplace listings."""

from typing import List, Sequence

from parts_finder.models.data_models import Confidence, PartListing, PriceQuote
from parts_finder.processor.junk_filter import is_junk


def compute_median(prices: Sequence[float]) -> float:
    """
    Textbook median; 0.0 for an empty sequence.

    Examples:
        >>> compute_median([100, 150, 200])
        150
        >>> compute_median([100, 200])
        150.0
    """
    if not prices:
        return 0.0
    ordered = sorted(prices)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def confidence_for(sample_count: int) -> Confidence:
    """Map the number of surviving listings to a confidence tier."""
    if sample_count >= 6:
        return Confidence.HIGH
    if sample_count >= 3:
        return Confidence.MEDIUM
    return Confidence.LOW


def filter_listings(listings: Sequence[PartListing]) -> List[PartListing]:
    """Drop junk titles and listings without a positive landed price."""
    return [
        listing for listing in listings
        if not is_junk(listing.title) and listing.landed_price > 0
    ]


def aggregate(listings: Sequence[PartListing]) -> PriceQuote:
    """
    Summarize raw listings into a median price and a confidence tier.

    The returned listings are the full filtered set sorted ascending by landed
    price. A median of 0 means no usable data; confidence is LOW in that case
    and must not be read on its own.

    Args:
        listings: Listings as fetched from one marketplace

    Returns:
        PriceQuote for the part
    """
    kept = sorted(filter_listings(listings), key=lambda listing: listing.landed_price)
    median = compute_median([listing.landed_price for listing in kept])

    return PriceQuote(
        median_price=median,
        confidence=confidence_for(len(kept)),
        listings=kept,
    )

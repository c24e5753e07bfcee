"""Core data models for the parts price finder."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Condition(Enum):
    """Listing condition as reported by the marketplace."""
    NEW = "new"
    USED = "used"
    REMANUFACTURED = "remanufactured"


class Availability(Enum):
    """Stock status of an offer."""
    IN_STOCK = "in_stock"
    BACKORDER = "backorder"
    UNKNOWN = "unknown"


class PriceSource(Enum):
    """Provenance of a price."""
    LIVE = "live"
    ESTIMATED = "estimated"


class Confidence(Enum):
    """Confidence tier derived from the surviving sample count."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PriceParseStatus(Enum):
    """Outcome of parsing an untrusted price field."""
    VALID = "valid"
    MISSING = "missing"
    UNPARSEABLE = "unparseable"


@dataclass(frozen=True)
class ParsedPrice:
    """Result of parsing a price field; value is only meaningful when valid."""
    status: PriceParseStatus
    value: float = 0.0
    raw: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status is PriceParseStatus.VALID


@dataclass(frozen=True)
class PartListing:
    """One marketplace search result for a part."""
    identifier: str
    title: str
    total_price: float  # Buyer-facing item price, shipping excluded
    shipping_cost: float
    condition: Condition
    source_url: str
    vendor: str = "ebay"
    image_url: Optional[str] = None
    affiliate_url: Optional[str] = None
    availability: Availability = Availability.IN_STOCK
    warranty: Optional[str] = None  # Catalog brand and part number

    @property
    def landed_price(self) -> float:
        """Price the buyer actually pays, shipping included."""
        return self.total_price + self.shipping_cost


@dataclass
class PriceQuote:
    """Aggregated live-price summary for one part from one marketplace."""
    median_price: float
    confidence: Confidence
    listings: List[PartListing] = field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return self.median_price > 0


@dataclass
class PartOffer:
    """A single entry in a part's result set, ready for display."""
    id: str
    name: str
    price: float
    price_source: PriceSource
    vendor: str
    url: str
    shipping: float = 0.0
    availability: Availability = Availability.UNKNOWN
    condition: Condition = Condition.NEW
    confidence: Optional[Confidence] = None
    note: Optional[str] = None
    image_url: Optional[str] = None
    affiliate_url: Optional[str] = None
    warranty: Optional[str] = None


@dataclass
class PartSearchResult:
    """Priced result set for one damaged part; the unit that gets cached."""
    part_name: str
    damage_id: str
    results: List[PartOffer]
    cheapest: Optional[PartOffer] = None
    fastest: Optional[PartOffer] = None
    cached: bool = False
    live_median_price: Optional[float] = None
    live_confidence: Optional[Confidence] = None


@dataclass
class CacheEntry:
    """Stored search result with its absolute expiry time (epoch seconds)."""
    result: PartSearchResult
    expires_at: float


@dataclass(frozen=True)
class DamageItem:
    """One damaged part to price."""
    damage_id: str
    part_name: str


@dataclass
class BatchOutcome:
    """Result of a deadline-bounded batch search."""
    results: List[PartSearchResult]
    timed_out: bool = False


@dataclass
class PartsSummary:
    """Totals computed from a batch of search results."""
    total_parts: int
    parts_with_pricing: int
    parts_with_live_price: int
    total_cheapest: float
    cached_count: int
    degraded: bool = False

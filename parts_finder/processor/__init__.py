"""Listing normalization, filtering and price aggregation."""

from .aggregator import aggregate, compute_median, confidence_for
from .catalog import build_fallback, estimated_price, match_category
from .junk_filter import is_junk
from .normalizer import normalize_ebay_response, parse_price

__all__ = [
    "aggregate",
    "build_fallback",
    "compute_median",
    "confidence_for",
    "estimated_price",
    "is_junk",
    "match_category",
    "normalize_ebay_response",
    "parse_price",
]

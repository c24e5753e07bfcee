"""Normalizers converting raw marketplace payloads to PartListing objects.

Marketplace payloads are untrusted: fields go missing, prices arrive as
strings with currency symbols, and eBay wraps every scalar in a one-element
list. Prices are parsed into an explicit ParsedPrice so a missing price is
never confused with a free one.
"""

import math
import uuid
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from parts_finder.models.data_models import (
    Availability,
    Condition,
    ParsedPrice,
    PartListing,
    PriceParseStatus,
)


def parse_price(value: Any) -> ParsedPrice:
    """
    Parse a price field of unknown type.

    Handles numbers and strings such as "$10.99", "1,299.00" or "10,99".
    Negative, NaN and infinite values are unparseable.

    Examples:
        >>> parse_price("$19.99").value
        19.99
        >>> parse_price(None).status
        <PriceParseStatus.MISSING: 'missing'>
    """
    if value is None:
        return ParsedPrice(PriceParseStatus.MISSING)

    if isinstance(value, bool):
        return ParsedPrice(PriceParseStatus.UNPARSEABLE, raw=str(value))

    if isinstance(value, (int, float)):
        price = float(value)
        if math.isfinite(price) and price >= 0:
            return ParsedPrice(PriceParseStatus.VALID, round(price, 2), raw=str(value))
        return ParsedPrice(PriceParseStatus.UNPARSEABLE, raw=str(value))

    if isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace("€", "").replace("£", "")
        if not cleaned:
            return ParsedPrice(PriceParseStatus.MISSING, raw=value)
        # Comma as decimal separator (European format)
        if "," in cleaned and "." not in cleaned:
            cleaned = cleaned.replace(",", ".")
        cleaned = cleaned.replace(",", "")
        try:
            price = float(cleaned)
        except ValueError:
            return ParsedPrice(PriceParseStatus.UNPARSEABLE, raw=value)
        if math.isfinite(price) and price >= 0:
            return ParsedPrice(PriceParseStatus.VALID, round(price, 2), raw=value)
        return ParsedPrice(PriceParseStatus.UNPARSEABLE, raw=value)

    return ParsedPrice(PriceParseStatus.UNPARSEABLE, raw=repr(value))


def _first(raw: Dict, field: str) -> Any:
    """Unwrap eBay's one-element list fields; returns None when absent."""
    value = raw.get(field)
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _text(raw: Dict, field: str) -> Optional[str]:
    """Unwrap a scalar field as stripped text; numbers and other JSON types are stringified."""
    value = _first(raw, field)
    if value is None:
        return None
    return str(value).strip()


def _money(container: Any, field: str) -> Any:
    """Extract ``container[0][field][0]["__value__"]`` from eBay's nested price shape."""
    if isinstance(container, list):
        container = container[0] if container else None
    if not isinstance(container, dict):
        return None
    amount = _first(container, field)
    if isinstance(amount, dict):
        return amount.get("__value__")
    return amount


def _extract_condition(raw: Dict) -> Condition:
    condition = _first(raw, "condition")
    name = _text(condition, "conditionDisplayName") if isinstance(condition, dict) else None
    lower = (name or "New").lower()
    if "used" in lower:
        return Condition.USED
    if "reman" in lower:
        return Condition.REMANUFACTURED
    return Condition.NEW


def build_affiliate_url(view_url: str, affiliate_id: str, campaign_id: str) -> Optional[str]:
    """Rover tracking link for a listing; None when no campaign is configured."""
    if not campaign_id or not view_url:
        return None
    return (
        f"https://rover.ebay.com/rover/1/{affiliate_id}/1"
        f"?mpre={quote(view_url, safe='')}&campid={campaign_id}&toolid=10001"
    )


def normalize_ebay_item(
    raw_item: Dict,
    affiliate_id: str = "",
    campaign_id: str = "",
) -> Optional[PartListing]:
    """
    Normalize one Finding API item.

    Returns None when the item price is missing or unparseable, or when the
    shipping cost is present but unparseable. A missing shipping cost is
    treated as free shipping.

    Args:
        raw_item: One entry of ``searchResult[0].item``
        affiliate_id: eBay Partner Network tracking id
        campaign_id: eBay Partner Network campaign id

    Returns:
        PartListing or None if the item carries no usable price
    """
    if not isinstance(raw_item, dict):
        return None

    price = parse_price(_money(raw_item.get("sellingStatus"), "currentPrice"))
    if not price.is_valid:
        return None

    shipping = parse_price(_money(raw_item.get("shippingInfo"), "shippingServiceCost"))
    if shipping.status is PriceParseStatus.UNPARSEABLE:
        return None

    view_url = _text(raw_item, "viewItemURL") or ""

    return PartListing(
        identifier=_text(raw_item, "itemId") or str(uuid.uuid4()),
        title=_text(raw_item, "title") or "",
        total_price=price.value,
        shipping_cost=shipping.value if shipping.is_valid else 0.0,
        condition=_extract_condition(raw_item),
        source_url=view_url,
        vendor="ebay",
        image_url=_text(raw_item, "galleryURL") or None,
        affiliate_url=build_affiliate_url(view_url, affiliate_id, campaign_id) or view_url or None,
        availability=Availability.IN_STOCK,
    )


def normalize_ebay_response(
    data: Any,
    affiliate_id: str = "",
    campaign_id: str = "",
) -> List[PartListing]:
    """
    Normalize a ``findItemsByKeywords`` JSON response.

    Raises:
        ValueError: If the payload is not a JSON object or eBay reports a failure
    """
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected Finding API payload type: {type(data).__name__}")

    response = _first(data, "findItemsByKeywordsResponse") or {}
    if not isinstance(response, dict):
        raise ValueError("findItemsByKeywordsResponse is not an object")
    if _first(response, "ack") == "Failure":
        raise ValueError("Finding API acknowledged the call as Failure")

    search_result = _first(response, "searchResult")
    items = search_result.get("item", []) if isinstance(search_result, dict) else []

    listings = []
    for raw_item in items or []:
        listing = normalize_ebay_item(raw_item, affiliate_id, campaign_id)
        if listing is not None:
            listings.append(listing)
    return listings


def normalize_availability(value: Optional[str]) -> Availability:
    lower = (value or "").lower()
    if "stock" in lower:
        return Availability.IN_STOCK
    if "back" in lower:
        return Availability.BACKORDER
    return Availability.UNKNOWN


def normalize_rockauto_part(
    raw_part: Dict,
    index: int,
    damage_id: str,
    part_name: str,
    fallback_url: str,
) -> Optional[PartListing]:
    """Normalize one catalog API part; None when it has no usable price."""
    if not isinstance(raw_part, dict):
        return None

    price = parse_price(raw_part.get("price"))
    if not price.is_valid or price.value <= 0:
        return None

    title = raw_part.get("name") or part_name
    brand = raw_part.get("brand")
    part_number = raw_part.get("part_number")
    warranty = None
    if brand:
        warranty = f"{brand} ({part_number})" if part_number else str(brand)
        detail = " ".join(str(value) for value in (brand, part_number) if value)
        title = f"{title} ({detail})"

    return PartListing(
        identifier=f"rockauto-api-{damage_id}-{index}",
        title=title,
        total_price=price.value,
        shipping_cost=0.0,
        condition=Condition.NEW,
        source_url=raw_part.get("url") or fallback_url,
        vendor="rockauto",
        availability=normalize_availability(raw_part.get("availability")),
        warranty=warranty,
    )

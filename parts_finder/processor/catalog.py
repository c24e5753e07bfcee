"""Static RockAuto catalog map and table-estimated part prices.

Builds the deterministic "browse" entry that is appended to every part's
result set, so a known part name never comes back without a price.
"""

import re
from typing import Dict, NamedTuple, Optional, Union

from parts_finder.models.data_models import (
    Availability,
    Condition,
    Confidence,
    PartOffer,
    PriceSource,
)

ROCKAUTO_CATALOG_URL = "https://www.rockauto.com/en/catalog"
DEFAULT_ESTIMATED_PRICE = 150.0


class CatalogCategory(NamedTuple):
    category: str
    subcategory: str
    label: str


_BODY = "body+%26+lamp+assembly"

# Order matters: the first key contained in the part name wins
CATEGORY_MAP: Dict[str, CatalogCategory] = {
    "front bumper": CatalogCategory(_BODY, "bumper+cover", "Front Bumper Cover"),
    "rear bumper": CatalogCategory(_BODY, "bumper+cover", "Rear Bumper Cover"),
    "bumper cover": CatalogCategory(_BODY, "bumper+cover", "Bumper Cover"),
    "bumper reinforcement": CatalogCategory(_BODY, "bumper+reinforcement", "Bumper Reinforcement"),
    "headlight": CatalogCategory(_BODY, "headlamp+assembly", "Headlamp Assembly"),
    "headlamp": CatalogCategory(_BODY, "headlamp+assembly", "Headlamp Assembly"),
    "taillight": CatalogCategory(_BODY, "tail+lamp+assembly", "Tail Lamp Assembly"),
    "tail light": CatalogCategory(_BODY, "tail+lamp+assembly", "Tail Lamp Assembly"),
    "fog light": CatalogCategory(_BODY, "fog+lamp", "Fog Lamp"),
    "turn signal": CatalogCategory(_BODY, "parking+%26+turn+signal+light", "Turn Signal"),
    "hood": CatalogCategory(_BODY, "hood", "Hood"),
    "fender": CatalogCategory(_BODY, "fender", "Fender"),
    "door": CatalogCategory(_BODY, "door+shell", "Door Shell"),
    "trunk": CatalogCategory(_BODY, "trunk+lid", "Trunk Lid"),
    "grille": CatalogCategory(_BODY, "grille", "Grille"),
    "windshield": CatalogCategory(_BODY, "windshield+glass", "Windshield Glass"),
    "window": CatalogCategory(_BODY, "door+glass", "Door Glass"),
    "mirror": CatalogCategory(_BODY, "mirror+-+side+view", "Side View Mirror"),
    "radiator": CatalogCategory("cooling+system", "radiator", "Radiator"),
    "condenser": CatalogCategory("a%2Fc+%26+heater", "a%2Fc+condenser", "A/C Condenser"),
    "strut": CatalogCategory("suspension", "strut+%26+coil+spring+assembly", "Strut Assembly"),
    "shock": CatalogCategory("suspension", "shock+absorber", "Shock Absorber"),
    "control arm": CatalogCategory("suspension", "control+arm", "Control Arm"),
    "suspension": CatalogCategory("suspension", "strut+%26+coil+spring+assembly", "Strut Assembly"),
    "engine": CatalogCategory("engine", "engine+assembly", "Engine Assembly"),
    "alternator": CatalogCategory(
        "engine+electrical", "alternator+%2F+generator+%26+related+components", "Alternator"
    ),
    "starter": CatalogCategory("engine+electrical", "starter+motor", "Starter Motor"),
    "brake pad": CatalogCategory("brake+%26+wheel+hub", "disc+brake+pad", "Brake Pads"),
    "brake rotor": CatalogCategory("brake+%26+wheel+hub", "disc+brake+rotor", "Brake Rotor"),
    "seat": CatalogCategory("interior", "seat+cover", "Seat Cover"),
    "dashboard": CatalogCategory("interior", "dash+board", "Dashboard"),
}

ESTIMATED_PRICES: Dict[str, float] = {
    "front bumper": 185, "rear bumper": 160, "bumper cover": 175,
    "bumper reinforcement": 120, "headlight": 145, "headlamp": 145,
    "taillight": 120, "tail light": 120, "fog light": 65,
    "turn signal": 55, "hood": 380, "fender": 220, "door": 340,
    "trunk": 260, "grille": 95, "windshield": 310, "window": 185,
    "mirror": 115, "radiator": 275, "condenser": 195,
    "strut": 165, "shock": 120, "control arm": 145,
    "engine": 1800, "alternator": 195, "starter": 145,
    "brake pad": 55, "brake rotor": 85, "seat": 210, "dashboard": 480,
}


def match_category(part_name: str) -> Optional[CatalogCategory]:
    """Return the catalog category for a free-text part name, if any."""
    lower = part_name.lower()
    for key, category in CATEGORY_MAP.items():
        if key in lower:
            return category
    return None


def estimated_price(part_name: str, default: float = DEFAULT_ESTIMATED_PRICE) -> float:
    """Flat table price for a part name; ``default`` when nothing matches."""
    lower = part_name.lower()
    for key, price in ESTIMATED_PRICES.items():
        if key in lower:
            return float(price)
    return float(default)


def _url_segment(value: str) -> str:
    return re.sub(r"\s+", "+", value.strip().lower())


def catalog_url(part_name: str, year: Union[str, int], make: str, model: str) -> str:
    """Deterministic RockAuto browse URL for the vehicle and (if matched) the part category."""
    vehicle_path = f"{_url_segment(make)},{year},{_url_segment(model)}"
    matched = match_category(part_name)
    if matched is None:
        return f"{ROCKAUTO_CATALOG_URL}/{vehicle_path}"
    return f"{ROCKAUTO_CATALOG_URL}/{vehicle_path},{matched.category},{matched.subcategory}"


def build_fallback(
    part_name: str,
    year: Union[str, int],
    make: str,
    model: str,
    default_price: float = DEFAULT_ESTIMATED_PRICE,
) -> PartOffer:
    """
    Build the estimated-price catalog entry for a part.

    Never fails and performs no I/O.

    Args:
        part_name: Free-text part name (e.g. "front bumper")
        year: Vehicle model year
        make: Vehicle make
        model: Vehicle model
        default_price: Price used when the part is not in the estimate table

    Returns:
        PartOffer with ESTIMATED provenance and MEDIUM confidence
    """
    matched = match_category(part_name)
    label = matched.label if matched else part_name
    slug = re.sub(r"\s", "-", part_name).lower()

    return PartOffer(
        id=f"rockauto-{slug}",
        name=f"{label} - RockAuto ({year} {make} {model})",
        price=estimated_price(part_name, default_price),
        price_source=PriceSource.ESTIMATED,
        vendor="rockauto",
        url=catalog_url(part_name, year, make, model),
        shipping=0.0,
        availability=Availability.IN_STOCK,
        condition=Condition.NEW,
        confidence=Confidence.MEDIUM,
        note="Est. price - click to browse exact pricing on RockAuto",
    )

"""Title filter for marketplace listings that should not count toward a price."""

from typing import Optional

JUNK_KEYWORDS = (
    "for parts", "for repair", "broken", "damaged", "cracked",
    "read desc", "as is", "shell only", "empty", "no bulb",
    "core only", "incomplete", "for rebuild", "non-working",
)


def is_junk(title: Optional[str]) -> bool:
    """
    Return True when a listing title marks the item as parts-only or non-working.

    Case-insensitive substring match; titles matching nothing are kept.
    """
    if not title:
        return False
    lower = title.lower()
    return any(keyword in lower for keyword in JUNK_KEYWORDS)

"""Utilities for transforming listing rows into search documents."""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from fitsearch.core.models import is_eligible

logger = logging.getLogger(__name__)

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_ALL_DAY_CLOSES = {"23:59", "24:00"}
_COUNTED_CATEGORIES = {"equipment": "equipment_count", "amenity": "amenity_count"}

PREMIUM_BOOST = 100
FREE_BOOST = 10


def is_24_hour(hours: Optional[Mapping[str, Any]]) -> bool:
    """True when any day opens at midnight and closes at the end of the day."""
    for day in (hours or {}).values():
        if not day:
            continue
        if day.get("open") == "00:00" and day.get("close") in _ALL_DAY_CLOSES:
            return True
    return False


def hours_today(hours: Optional[Mapping[str, Any]], today: Optional[date] = None) -> Optional[str]:
    if not hours:
        return None
    today = today or date.today()
    day = hours.get(_WEEKDAYS[today.weekday()])
    if not day or not day.get("open") or not day.get("close"):
        return None
    return f"{day['open']} - {day['close']}"


def boost_score(subscription_tier: Optional[str]) -> int:
    return PREMIUM_BOOST if subscription_tier == "premium" else FREE_BOOST


def summarize_attributes(links: Iterable[Mapping[str, Any]]) -> Tuple[List[str], List[str], Dict[str, int]]:
    names: List[str] = []
    categories: List[str] = []
    counts = {key: 0 for key in _COUNTED_CATEGORIES.values()}
    for link in links or []:
        name = link.get("name")
        if not name:
            logger.debug("Skipping attribute link without a name: %s", link)
            continue
        names.append(name)
        category = link.get("category")
        if category and category not in categories:
            categories.append(category)
        counter = _COUNTED_CATEGORIES.get(category)
        if counter:
            counts[counter] += 1
    return names, categories, counts


def _epoch_millis(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return int(value.timestamp() * 1000)


def _optional(value: Any) -> Any:
    return value if value not in (None, "") else None


def to_search_document(
    row: Mapping[str, Any],
    attributes: Iterable[Mapping[str, Any]],
    today: Optional[date] = None,
) -> Optional[Dict[str, Any]]:
    """Project a listing row and its attribute links into one search document.

    Returns None when the listing is not eligible for indexing and raises
    ValueError when it cannot be placed on the map. Optional fields that are
    empty are left out of the document entirely.
    """
    if not is_eligible(row):
        return None

    if row.get("latitude") is None or row.get("longitude") is None:
        raise ValueError(f"listing {row.get('id')} has no coordinates")

    names, categories, counts = summarize_attributes(attributes)
    hours = row.get("hours")

    document: Dict[str, Any] = {
        "id": str(row["id"]),
        "name": row.get("name"),
        "slug": row.get("slug"),
        "description": _optional(row.get("description")),
        "address": row.get("address"),
        "city": row.get("city"),
        "state": _optional(row.get("state")),
        "country": row.get("country"),
        "postal_code": _optional(row.get("postal_code")),
        "location": [float(row["latitude"]), float(row["longitude"])],
        "phone": _optional(row.get("phone")),
        "website": _optional(row.get("website")),
        "gym_type": row.get("gym_type"),
        "price_range": _optional(row.get("price_range")),
        "is_24_hour": is_24_hour(hours),
        "hours_today": hours_today(hours, today),
        "attributes": names,
        "attribute_categories": categories,
        "equipment_count": counts["equipment_count"],
        "amenity_count": counts["amenity_count"],
        "status": row.get("status"),
        "subscription_tier": row.get("subscription_tier") or "free",
        "updated_at": _epoch_millis(row.get("updated_at")),
        "created_at": _epoch_millis(row.get("created_at")),
        "boost_score": boost_score(row.get("subscription_tier")),
    }
    return {key: value for key, value in document.items() if value is not None}

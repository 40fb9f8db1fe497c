"""Compile structured search parameters into Typesense filter and sort expressions.

Filters are built as small predicate objects and rendered at the end, so
caller-supplied values are always quoted and never spliced into the
expression as raw text.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from fitsearch.core.models import ELIGIBLE_STATUSES, GeoFilter, SearchQuery

logger = logging.getLogger(__name__)

KM_PER_MILE = 1.60934
RELEVANCE_SORT = "_text_match:desc,boost_score:desc"


def quote(value: str) -> str:
    # Backticks delimit values in filter_by and cannot be escaped inside one.
    return "`" + str(value).replace("`", "").strip() + "`"


def clean_values(values: Iterable[str]) -> Tuple[str, ...]:
    seen: List[str] = []
    for value in values or ():
        text = str(value).replace("`", "").strip()
        if text and text not in seen:
            seen.append(text)
    return tuple(seen)


@dataclass(frozen=True)
class InFilter:
    field: str
    values: Tuple[str, ...]

    def render(self) -> str:
        return f"{self.field}:=[{','.join(quote(v) for v in self.values)}]"


@dataclass(frozen=True)
class EqualsFilter:
    field: str
    value: object

    def render(self) -> str:
        if isinstance(self.value, bool):
            return f"{self.field}:={'true' if self.value else 'false'}"
        return f"{self.field}:={quote(self.value)}"


@dataclass(frozen=True)
class GeoRadiusFilter:
    field: str
    lat: float
    lng: float
    radius_km: float

    def render(self) -> str:
        return f"{self.field}:({float(self.lat)}, {float(self.lng)}, {round(self.radius_km, 4)} km)"


STATUS_FILTER = InFilter("status", tuple(ELIGIBLE_STATUSES))


@dataclass
class FilterExpression:
    predicates: List[object] = field(default_factory=list)

    def add_in(self, field_name: str, values: Iterable[str]) -> None:
        cleaned = clean_values(values)
        if cleaned:
            self.predicates.append(InFilter(field_name, cleaned))

    def render(self) -> str:
        return " && ".join(predicate.render() for predicate in self.predicates)


def miles_to_km(miles: float) -> float:
    return miles * KM_PER_MILE


def merge_cities(explicit: Sequence[str], extracted: Sequence[str]) -> List[str]:
    merged: List[str] = []
    for city in list(explicit or []) + list(extracted or []):
        if city and city not in merged:
            merged.append(city)
    return merged


def compile_filters(query: SearchQuery, extracted_cities: Sequence[str] = ()) -> FilterExpression:
    """Build the conjunction of predicates for one search.

    The eligibility predicate is always first and cannot be removed by the caller.
    """
    expression = FilterExpression([STATUS_FILTER])
    expression.add_in("gym_type", query.gym_types)
    expression.add_in("price_range", query.price_ranges)
    expression.add_in("attributes", query.attributes)
    expression.add_in("city", merge_cities(query.cities, extracted_cities))
    expression.add_in("country", query.countries)

    if query.is_24_hour is not None:
        expression.predicates.append(EqualsFilter("is_24_hour", bool(query.is_24_hour)))
    if query.subscription_tier:
        expression.predicates.append(EqualsFilter("subscription_tier", query.subscription_tier))
    if query.geo is not None:
        expression.predicates.append(
            GeoRadiusFilter("location", query.geo.lat, query.geo.lng, miles_to_km(query.geo.radius_miles))
        )
    return expression


def compile_sort(sort_by: Optional[str], geo: Optional[GeoFilter] = None) -> str:
    if sort_by == "distance":
        if geo is None:
            logger.debug("Distance sort requested without a geo center; using relevance")
            return RELEVANCE_SORT
        return f"location({float(geo.lat)}, {float(geo.lng)}):asc"
    if sort_by == "newest":
        return "created_at:desc"
    if sort_by == "name":
        return "name:asc"
    if sort_by not in (None, "", "relevance"):
        logger.warning("Unknown sort mode %r; using relevance", sort_by)
    return RELEVANCE_SORT

"""Core data models shared by the search and indexing paths."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

LISTING_STATUSES = ("pending", "verified", "claimed", "suspended")
ELIGIBLE_STATUSES = ("verified", "claimed")
SUBSCRIPTION_TIERS = ("free", "premium")
ATTRIBUTE_CATEGORIES = ("equipment", "amenity", "class", "specialty", "recovery")
SORT_MODES = ("relevance", "distance", "newest", "name")


def is_eligible(row: Optional[Dict[str, Any]]) -> bool:
    """Only verified and claimed listings may appear in the search index."""
    return bool(row) and row.get("status") in ELIGIBLE_STATUSES


@dataclass(slots=True)
class GeoFilter:
    lat: float
    lng: float
    radius_miles: float


@dataclass(slots=True)
class SearchQuery:
    """One search request after the HTTP layer has split its parameters."""

    query: str = ""
    page: int = 1
    per_page: int = 20
    gym_types: List[str] = field(default_factory=list)
    price_ranges: List[str] = field(default_factory=list)
    attributes: List[str] = field(default_factory=list)
    cities: List[str] = field(default_factory=list)
    countries: List[str] = field(default_factory=list)
    is_24_hour: Optional[bool] = None
    subscription_tier: Optional[str] = None
    geo: Optional[GeoFilter] = None
    sort_by: str = "relevance"


@dataclass(slots=True)
class FacetCount:
    value: str
    count: int


@dataclass(slots=True)
class SearchResponse:
    results: List[Dict[str, Any]]
    total: int
    page: int
    per_page: int
    total_pages: int
    facets: Dict[str, List[FacetCount]]
    processing_time_ms: int = 0
    available: bool = True
    error: Optional[str] = None

    @classmethod
    def unavailable(cls, page: int, per_page: int, facet_keys: List[str], error: str) -> "SearchResponse":
        return cls(
            results=[],
            total=0,
            page=page,
            per_page=per_page,
            total_pages=0,
            facets={key: [] for key in facet_keys},
            available=False,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class ReconcileDecision:
    """Outcome of comparing one listing's source row against index policy."""

    action: str  # "upsert", "delete" or "noop"
    listing_id: Optional[str]
    document: Optional[Dict[str, Any]] = field(default=None, repr=False)
    reason: str = ""


@dataclass(slots=True)
class ReindexReport:
    requested: int = 0
    succeeded: int = 0
    failed: int = 0
    batches: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def percent(self) -> int:
        if not self.requested:
            return 100
        return round(self.succeeded / self.requested * 100)

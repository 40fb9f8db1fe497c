"""Search orchestration: parse, compile, query Typesense, aggregate facets."""

import logging
import math
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional

from fitsearch.core.config import get_settings
from fitsearch.core.models import SearchQuery, SearchResponse
from fitsearch.search.facets import aggregate_facets
from fitsearch.search.filters import STATUS_FILTER, compile_filters, compile_sort, merge_cities
from fitsearch.search.locations import LocationDictionary
from fitsearch.search.query_parser import WILDCARD, parse_query
from fitsearch.search.schema import FACET_FIELDS
from fitsearch.vendors.typesense import TypesenseClient, TypesenseError, create_search_client

logger = logging.getLogger(__name__)

METERS_PER_MILE = 1609.34
SEARCH_UNAVAILABLE = "search unavailable"
QUERY_BY = "name,description,address,city,attributes,gym_type"
QUERY_BY_WEIGHTS = "5,3,2,4,4,3"
MAX_FACET_VALUES = 50
AUTOCOMPLETE_MIN_LENGTH = 2
AUTOCOMPLETE_LIMIT = 5


class SearchService:
    def __init__(
        self,
        client: Optional[TypesenseClient] = None,
        locations: Optional[LocationDictionary] = None,
        collection: Optional[str] = None,
    ):
        self._client = client
        self.locations = locations or LocationDictionary()
        self.collection = collection or get_settings().collection_name

    @property
    def client(self) -> TypesenseClient:
        if self._client is None:
            self._client = create_search_client()
        return self._client

    def _resolve_text(self, query: SearchQuery):
        """Return (text query, extracted cities, explicit cities)."""
        explicit = [self.locations.normalize_city(city)[0] for city in query.cities if city and city.strip()]
        raw = (query.query or "").strip()
        if not raw:
            return WILDCARD, [], explicit
        parsed = parse_query(raw, self.locations)
        return parsed.search_terms, parsed.location_filters, explicit

    def build_params(self, query: SearchQuery) -> Dict[str, Any]:
        text, extracted, explicit = self._resolve_text(query)
        cities = merge_cities(explicit, extracted)
        if text == WILDCARD and cities:
            # Rank listings in the named cities by text match on the city field.
            text = " ".join(cities)

        compiled = replace(query, cities=explicit)
        expression = compile_filters(compiled, extracted)
        return {
            "q": text,
            "query_by": QUERY_BY,
            "query_by_weights": QUERY_BY_WEIGHTS,
            "filter_by": expression.render(),
            "sort_by": compile_sort(query.sort_by, query.geo),
            "page": max(query.page, 1),
            "per_page": query.per_page,
            "facet_by": ",".join(FACET_FIELDS),
            "max_facet_values": MAX_FACET_VALUES,
            "drop_tokens_threshold": 0,
            "num_typos": 2,
            "exhaustive_search": "true",
        }

    def search(self, query: SearchQuery) -> SearchResponse:
        page = max(query.page, 1)
        params = self.build_params(query)
        started = time.monotonic()
        try:
            response = self.client.search(self.collection, params)
        except TypesenseError as exc:
            logger.error("Search failed for q=%r: %s", params["q"], exc)
            return SearchResponse.unavailable(page, query.per_page, list(FACET_FIELDS.values()), SEARCH_UNAVAILABLE)

        total = int(response.get("found") or 0)
        results = [_to_result(hit, query.geo is not None) for hit in response.get("hits") or []]
        processing_ms = response.get("search_time_ms")
        if processing_ms is None:
            processing_ms = int((time.monotonic() - started) * 1000)

        return SearchResponse(
            results=results,
            total=total,
            page=page,
            per_page=query.per_page,
            total_pages=math.ceil(total / query.per_page) if query.per_page else 0,
            facets=aggregate_facets(response),
            processing_time_ms=int(processing_ms),
        )

    def autocomplete(self, text: str, limit: int = AUTOCOMPLETE_LIMIT) -> List[Dict[str, Any]]:
        """Prefix suggestions for the search bar; empty on short input or errors."""
        text = (text or "").strip()
        if len(text) < AUTOCOMPLETE_MIN_LENGTH:
            return []
        params = {
            "q": text,
            "query_by": "name,city",
            "filter_by": STATUS_FILTER.render(),
            "per_page": limit,
            "prefix": "true",
        }
        try:
            response = self.client.search(self.collection, params)
        except TypesenseError as exc:
            logger.error("Autocomplete failed for q=%r: %s", text, exc)
            return []
        return [
            {
                "id": hit["document"].get("id"),
                "name": hit["document"].get("name"),
                "city": hit["document"].get("city"),
                "slug": hit["document"].get("slug"),
            }
            for hit in response.get("hits") or []
        ]


def _to_result(hit: Dict[str, Any], geo_active: bool) -> Dict[str, Any]:
    result = dict(hit.get("document") or {})
    if geo_active:
        meters = (hit.get("geo_distance_meters") or {}).get("location")
        if meters is not None:
            result["distance"] = meters / METERS_PER_MILE
    return result

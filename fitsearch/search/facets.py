"""Turn Typesense facet_counts into uniform value/count lists."""

from typing import Any, Dict, List, Mapping, Optional

from fitsearch.core.models import FacetCount
from fitsearch.search.schema import FACET_FIELDS


def aggregate_facets(
    response: Mapping[str, Any],
    fields: Optional[Mapping[str, str]] = None,
) -> Dict[str, List[FacetCount]]:
    """Every requested facet is present in the result, empty when the response omits it."""
    fields = fields or FACET_FIELDS
    by_field = {
        entry.get("field_name"): entry.get("counts") or []
        for entry in response.get("facet_counts") or []
    }
    return {
        key: [FacetCount(value=str(count.get("value")), count=int(count.get("count", 0))) for count in by_field.get(field_name, [])]
        for field_name, key in fields.items()
    }

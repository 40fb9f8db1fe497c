"""Split a free-text query into search terms and city filters."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from fitsearch.search.locations import LocationDictionary

logger = logging.getLogger(__name__)

WILDCARD = "*"

# Terms that carry no meaning in a gym directory search.
STOPWORDS = frozenset({
    "gym", "gyms", "fitness", "center", "centers", "centre", "centres",
    "club", "clubs", "studio", "studios", "facility", "facilities",
    "with", "and", "or", "the", "a", "an", "in", "near", "nearby", "me",
    "find", "search", "looking", "for", "that", "has", "have", "having",
})

_DEFAULT_LOCATIONS = LocationDictionary()


@dataclass(slots=True)
class ParsedQuery:
    search_terms: str
    location_filters: List[str] = field(default_factory=list)

    @property
    def is_wildcard(self) -> bool:
        return self.search_terms == WILDCARD


def strip_stopwords(text: str) -> List[str]:
    return [word for word in text.lower().split() if word not in STOPWORDS]


def parse_query(query: str, locations: Optional[LocationDictionary] = None) -> ParsedQuery:
    """Extract known locations from ``query`` and drop stopwords from the rest.

    Longer aliases are consumed first so "miami beach" wins over "miami".
    When nothing meaningful remains the search terms fall back to the wildcard.
    """
    locations = locations or _DEFAULT_LOCATIONS
    remaining = query.lower()
    location_filters: List[str] = []

    for alias, canonical in locations.resolve(remaining):
        pattern = locations.pattern(alias)
        if not pattern.search(remaining):
            # Already consumed by a longer alias.
            continue
        if canonical not in location_filters:
            location_filters.append(canonical)
        remaining = pattern.sub(" ", remaining)

    words = strip_stopwords(remaining.replace(",", " "))
    search_terms = " ".join(words) if words else WILDCARD
    logger.debug("Parsed query %r -> terms=%r locations=%s", query, search_terms, location_filters)
    return ParsedQuery(search_terms=search_terms, location_filters=location_filters)

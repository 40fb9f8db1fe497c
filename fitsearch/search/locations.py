"""Known location aliases used to pull city names out of free-text queries."""

import logging
import re
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_LOCATIONS: Dict[str, str] = {
    "austin": "Austin",
    "austin tx": "Austin",
    "austin, tx": "Austin",
    "miami": "Miami",
    "miami fl": "Miami",
    "miami, fl": "Miami",
    "new york": "New York",
    "new york city": "New York",
    "new york, ny": "New York",
    "nyc": "New York",
    "manhattan": "New York",
    "brooklyn": "Brooklyn",
    "brooklyn, ny": "Brooklyn",
    "los angeles": "Los Angeles",
    "los angeles, ca": "Los Angeles",
    "la": "Los Angeles",
    "chicago": "Chicago",
    "chicago, il": "Chicago",
    "houston": "Houston",
    "houston, tx": "Houston",
    "phoenix": "Phoenix",
    "dallas": "Dallas",
    "san antonio": "San Antonio",
    "san diego": "San Diego",
    "san jose": "San Jose",
    "san francisco": "San Francisco",
    "sf": "San Francisco",
    "denver": "Denver",
    "denver, co": "Denver",
    "seattle": "Seattle",
    "seattle, wa": "Seattle",
    "boston": "Boston",
    "boston, ma": "Boston",
    "atlanta": "Atlanta",
    "atlanta, ga": "Atlanta",
    "portland": "Portland",
    "nashville": "Nashville",
    "miami beach": "Miami Beach",
    "miami beach, fl": "Miami Beach",
}


def alias_pattern(alias: str) -> re.Pattern:
    # Whole-word match so "sf" does not fire inside "crossfit".
    return re.compile(r"(?<![a-z0-9])" + re.escape(alias) + r"(?![a-z0-9])")


class LocationDictionary:
    """Alias -> canonical city lookup, longest alias first."""

    def __init__(self, aliases: Optional[Mapping[str, str]] = None, version: str = "builtin"):
        source = DEFAULT_LOCATIONS if aliases is None else aliases
        self.version = version
        self._aliases = {key.strip().lower(): value for key, value in source.items() if key.strip()}
        self._ordered = sorted(self._aliases.items(), key=lambda item: len(item[0]), reverse=True)
        self._patterns = {alias: alias_pattern(alias) for alias in self._aliases}

    def __len__(self) -> int:
        return len(self._aliases)

    def extend(self, aliases: Mapping[str, str], version: Optional[str] = None) -> "LocationDictionary":
        merged = dict(self._aliases)
        merged.update(aliases)
        return LocationDictionary(merged, version=version or self.version)

    def pattern(self, alias: str) -> re.Pattern:
        return self._patterns[alias]

    def resolve(self, text: str) -> List[Tuple[str, str]]:
        """Return (alias, canonical) pairs found in ``text``, longest alias first."""
        lowered = text.lower()
        return [
            (alias, canonical)
            for alias, canonical in self._ordered
            if self._patterns[alias].search(lowered)
        ]

    def normalize_city(self, value: str) -> Tuple[str, bool]:
        """Map user-entered city text to the stored city name.

        Returns the city and whether it came from the dictionary.
        """
        normalized = value.strip().lower()
        if normalized in self._aliases:
            return self._aliases[normalized], True

        for alias, canonical in self._ordered:
            if normalized.startswith(alias + ",") or normalized.startswith(alias + " "):
                return canonical, True

        first = value.split(",")[0].strip()
        cleaned = " ".join(word[:1].upper() + word[1:].lower() for word in first.split())
        logger.debug("City %r not in location dictionary %s; using %r", value, self.version, cleaned)
        return cleaned, False

"""Typesense collection schema for fitness center documents."""

from typing import Any, Dict

COLLECTION_NAME = "fitness_centers"

# Facet field name -> key used in search responses.
FACET_FIELDS = {
    "gym_type": "gym_types",
    "price_range": "price_ranges",
    "attributes": "attributes",
    "city": "cities",
    "country": "countries",
}


def build_schema(name: str = COLLECTION_NAME) -> Dict[str, Any]:
    return {
        "name": name,
        "fields": [
            {"name": "id", "type": "string"},
            {"name": "name", "type": "string"},
            {"name": "slug", "type": "string"},
            {"name": "description", "type": "string", "optional": True},
            {"name": "address", "type": "string"},
            {"name": "city", "type": "string", "facet": True},
            {"name": "state", "type": "string", "optional": True, "facet": True},
            {"name": "country", "type": "string", "facet": True},
            {"name": "postal_code", "type": "string", "optional": True},
            # [lat, lng]
            {"name": "location", "type": "geopoint"},
            {"name": "phone", "type": "string", "optional": True},
            {"name": "website", "type": "string", "optional": True},
            {"name": "gym_type", "type": "string", "facet": True},
            {"name": "price_range", "type": "string", "optional": True, "facet": True},
            {"name": "is_24_hour", "type": "bool", "facet": True},
            {"name": "hours_today", "type": "string", "optional": True},
            {"name": "attributes", "type": "string[]", "facet": True},
            {"name": "attribute_categories", "type": "string[]", "facet": True},
            {"name": "equipment_count", "type": "int32", "optional": True},
            {"name": "amenity_count", "type": "int32", "optional": True},
            {"name": "status", "type": "string"},
            {"name": "subscription_tier", "type": "string", "facet": True},
            {"name": "updated_at", "type": "int64"},
            {"name": "created_at", "type": "int64"},
            {"name": "boost_score", "type": "int32"},
        ],
        "default_sorting_field": "boost_score",
        "enable_nested_fields": False,
    }

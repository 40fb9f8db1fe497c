import sys
from pathlib import Path

import pytest

# Ensure the `fitsearch` package is importable when running pytest from the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    from fitsearch.core import config

    monkeypatch.setenv("TYPESENSE_HOST", "localhost")
    monkeypatch.setenv("TYPESENSE_COLLECTION", "fitness_centers")
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def make_listing(listing_id="gym-1", **overrides):
    row = {
        "id": listing_id,
        "name": "Iron Temple",
        "slug": "iron-temple",
        "description": "Old school strength gym",
        "address": "1 Main St",
        "city": "Austin",
        "state": "TX",
        "country": "United States",
        "postal_code": "78701",
        "latitude": 30.2672,
        "longitude": -97.7431,
        "phone": "555-0100",
        "email": "hello@example.com",
        "website": "https://example.com",
        "hours": {"monday": {"open": "06:00", "close": "22:00"}},
        "gym_type": "powerlifting",
        "price_range": "$$",
        "status": "verified",
        "subscription_tier": "free",
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-02-01T00:00:00Z",
    }
    row.update(overrides)
    return row


@pytest.fixture
def listing_factory():
    return make_listing

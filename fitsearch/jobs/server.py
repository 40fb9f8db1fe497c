"""HTTP entrypoint for search, autocomplete and index synchronisation."""

from __future__ import annotations

import hmac
import logging
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request

from fitsearch.core.config import ConfigError, get_settings
from fitsearch.core.db import ListingNotFound, SourceReadError
from fitsearch.core.models import SORT_MODES, GeoFilter, SearchQuery
from fitsearch.search.service import SearchService
from fitsearch.sync.indexer import IndexSynchronizer, InvalidChangeEvent
from fitsearch.vendors.typesense import TypesenseError

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


class BadRequest(ValueError):
    pass


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    return SearchService()


@lru_cache(maxsize=1)
def get_synchronizer() -> IndexSynchronizer:
    return IndexSynchronizer()


# ---------- Request parsing ----------


def _split(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def _int_arg(args, name: str, default: int, minimum: int = 1, maximum: Optional[int] = None) -> int:
    raw = args.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"{name} must be an integer")
    if value < minimum or (maximum is not None and value > maximum):
        raise BadRequest(f"{name} is out of range")
    return value


def _float_arg(args, name: str) -> Optional[float]:
    raw = args.get(name)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"{name} must be numeric")


def parse_search_args(args) -> SearchQuery:
    """Build a SearchQuery from the public query-string surface."""
    sort_by = args.get("sort") or "relevance"
    if sort_by not in SORT_MODES:
        raise BadRequest(f"sort must be one of {', '.join(SORT_MODES)}")

    geo = None
    lat, lng, radius = _float_arg(args, "lat"), _float_arg(args, "lng"), _float_arg(args, "radius")
    if lat is not None or lng is not None:
        if lat is None or lng is None:
            raise BadRequest("lat and lng must be supplied together")
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            raise BadRequest("lat/lng out of range")
        if radius is not None and radius <= 0:
            raise BadRequest("radius must be positive")
        geo = GeoFilter(lat=lat, lng=lng, radius_miles=radius or 25.0)

    location = (args.get("location") or "").strip()
    cities = [location.split(",")[0].strip()] if location else []

    return SearchQuery(
        query=(args.get("q") or "").strip(),
        page=_int_arg(args, "page", 1),
        per_page=_int_arg(args, "per_page", DEFAULT_PER_PAGE, maximum=MAX_PER_PAGE),
        gym_types=_split(args.get("type")),
        price_ranges=_split(args.get("price")),
        attributes=_split(args.get("attr")),
        cities=cities,
        countries=_split(args.get("country")),
        is_24_hour=True if args.get("24hour") == "true" else None,
        subscription_tier=args.get("tier") or None,
        geo=geo,
        sort_by=sort_by,
    )


def _authorized() -> bool:
    secret = get_settings().webhook_secret
    if not secret:
        return True
    supplied = request.headers.get("X-Webhook-Secret", "")
    return hmac.compare_digest(supplied, secret)


def _decision_payload(decision) -> Dict[str, Any]:
    return {"action": decision.action, "listing_id": decision.listing_id, "skipped": decision.action == "noop"}


# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    return jsonify({"status": "ok", "revision": os.getenv("K_REVISION", "unknown")}), 200


@app.get("/search")
def search() -> Any:
    try:
        query = parse_search_args(request.args)
    except BadRequest as exc:
        return jsonify({"error": str(exc)}), 400

    response = get_search_service().search(query)
    status = 200 if response.available else 503
    return jsonify({"data": response.to_dict()}), status


@app.get("/search/autocomplete")
def autocomplete() -> Any:
    suggestions = get_search_service().autocomplete(request.args.get("q", ""))
    return jsonify({"suggestions": suggestions}), 200


@app.post("/webhooks/listings")
def listing_changed() -> Any:
    """Change notifications from the listing store; non-2xx asks the sender to redeliver."""
    if not _authorized():
        return jsonify({"error": "unauthorized"}), 401

    payload: Any = request.get_json(silent=True) or {}
    event_type = payload.get("type") if isinstance(payload, dict) else None
    try:
        decision = get_synchronizer().handle_change_event(payload)
    except InvalidChangeEvent as exc:
        return jsonify({"error": str(exc)}), 400
    except ValueError as exc:
        logger.warning("Listing from %s event cannot be indexed: %s", event_type, exc)
        return jsonify({"error": str(exc)}), 422
    except (ConfigError, SourceReadError, TypesenseError) as exc:
        logger.exception("Failed to process %s event: %s", event_type, exc)
        return jsonify({"error": "sync failed"}), 500

    return jsonify({"data": _decision_payload(decision)}), 200


@app.post("/listings/<listing_id>/index")
def index_listing(listing_id: str) -> Any:
    """Index one listing right after an approval or edit."""
    if not _authorized():
        return jsonify({"error": "unauthorized"}), 401

    try:
        decision = get_synchronizer().project_and_upsert(listing_id)
    except ListingNotFound:
        return jsonify({"error": f"listing {listing_id} not found"}), 404
    except ValueError as exc:
        logger.warning("Listing %s cannot be indexed: %s", listing_id, exc)
        return jsonify({"error": str(exc)}), 422
    except (ConfigError, SourceReadError, TypesenseError) as exc:
        logger.exception("Failed to index listing %s: %s", listing_id, exc)
        return jsonify({"error": "indexing failed"}), 500

    return jsonify({"data": _decision_payload(decision)}), 200


def main() -> None:
    port = int(os.getenv("PORT") or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()

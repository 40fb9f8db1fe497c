"""CLI job to create the Typesense collection, optionally recreating it."""

import argparse
import json
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from fitsearch.core.config import ConfigError, get_settings
from fitsearch.search.schema import build_schema
from fitsearch.vendors.typesense import TypesenseClient, TypesenseError, TypesenseNotFound, create_admin_client

logger = logging.getLogger(__name__)


def _ask(prompt: str) -> bool:
    return input(prompt).strip().lower() == "yes"


def setup_collection(
    client: TypesenseClient,
    name: str,
    confirm: Callable[[str], bool] = _ask,
) -> bool:
    """Create ``name``; an existing collection is only dropped when confirmed.

    Returns True when a collection was created.
    """
    try:
        existing = client.retrieve_collection(name)
    except TypesenseNotFound:
        existing = None

    if existing is not None:
        created_at = datetime.fromtimestamp(existing.get("created_at", 0), tz=timezone.utc)
        logger.info("Collection %s already exists.", name)
        logger.info("  Documents: %s", existing.get("num_documents"))
        logger.info("  Created at: %s", created_at.isoformat())
        if not confirm("Do you want to delete and recreate? (yes/no): "):
            logger.info("Keeping existing collection.")
            return False
        logger.info("Deleting existing collection %s", name)
        client.delete_collection(name)

    schema = build_schema(name)
    logger.debug("Creating collection with schema:\n%s", json.dumps(schema, indent=2))
    client.create_collection(schema)
    logger.info("Collection %s created successfully", name)
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create the Typesense collection for fitness centers")
    parser.add_argument("--yes", dest="assume_yes", action="store_true", help="Recreate without prompting")
    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    confirm: Optional[Callable[[str], bool]] = (lambda _prompt: True) if args.assume_yes else _ask

    try:
        settings = get_settings()
        setup_collection(create_admin_client(settings), settings.collection_name, confirm=confirm)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except TypesenseError as exc:
        logger.error("Error setting up collection: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

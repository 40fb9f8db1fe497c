"""CLI job to bulk index every eligible listing into Typesense."""

import argparse
import logging
from typing import Optional

from fitsearch.core.config import ConfigError, get_settings
from fitsearch.core.models import ReindexReport
from fitsearch.sync.indexer import IndexSynchronizer, ReindexAborted
from fitsearch.vendors.typesense import TypesenseError, create_admin_client

logger = logging.getLogger(__name__)


def _log_progress(report: ReindexReport) -> None:
    logger.info("  Indexed %d/%d (%d%%)", report.succeeded, report.requested, report.percent)


def run_reindex_job(*, batch_size: int, synchronizer: Optional[IndexSynchronizer] = None) -> ReindexReport:
    if synchronizer is None:
        settings = get_settings()
        client = create_admin_client(settings)
        synchronizer = IndexSynchronizer(client=client, collection=settings.collection_name)

    logger.info("Starting bulk indexing to %s with batch_size=%d", synchronizer.collection, batch_size)
    report = synchronizer.reindex_all(batch_size=batch_size, on_progress=_log_progress)

    if report.requested == 0:
        logger.info("No listings to index.")
    logger.info(
        "Completed run: indexed=%d failed=%d requested=%d batches=%d",
        report.succeeded,
        report.failed,
        report.requested,
        report.batches,
    )

    try:
        logger.info("Collection %s now holds %d documents", synchronizer.collection, synchronizer.document_count())
    except TypesenseError as exc:
        logger.warning("Unable to read collection stats: %s", exc)
    return report


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("batch size must be positive")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bulk index fitness centers into Typesense")
    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=_positive_int,
        default=None,
        help="Number of listings fetched and imported per batch (default: REINDEX_BATCH_SIZE)",
    )
    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    try:
        batch_size = args.batch_size if args.batch_size is not None else get_settings().reindex_batch_size
        run_reindex_job(batch_size=batch_size)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except ReindexAborted as exc:
        logger.error("Bulk indexing aborted: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

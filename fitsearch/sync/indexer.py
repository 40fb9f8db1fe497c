"""Keep the Typesense collection in agreement with the listing store.

Every entry point (bulk reindex, single-id upsert, change events) goes through
``reconcile`` and ``apply``, so a listing is projected the same way no matter
which path delivered it. All writes are idempotent upserts or deletes keyed by
listing id, so repeated or out-of-order delivery converges.
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from fitsearch.core.config import get_settings
from fitsearch.core.db import ListingNotFound, ListingStore, SourceReadError
from fitsearch.core.models import ReconcileDecision, ReindexReport, is_eligible
from fitsearch.etl.transform import to_search_document
from fitsearch.vendors.typesense import TypesenseClient, TypesenseError, create_admin_client

logger = logging.getLogger(__name__)

EVENT_TYPES = ("INSERT", "UPDATE", "DELETE")
MAX_LOGGED_FAILURES = 3


class ReindexAborted(RuntimeError):
    """Raised when a bulk run cannot read its source rows."""


class InvalidChangeEvent(ValueError):
    """Raised for change events that are missing a type or a row."""


def reconcile(
    listing_id: Optional[str],
    row: Optional[Mapping[str, Any]],
    attributes: Iterable[Mapping[str, Any]] = (),
    previously_indexed: Optional[bool] = None,
    today: Optional[date] = None,
) -> ReconcileDecision:
    """Decide what the index should hold for one listing.

    ``previously_indexed`` is False when the caller knows the document cannot
    exist yet, which turns an ineligible row into a no-op instead of a delete.
    """
    if row is None:
        return ReconcileDecision("delete", listing_id, reason="listing removed")

    listing_id = str(row.get("id") or listing_id)
    if not is_eligible(row):
        if previously_indexed is False:
            return ReconcileDecision("noop", listing_id, reason=f"status {row.get('status')} not indexable")
        return ReconcileDecision("delete", listing_id, reason=f"status {row.get('status')} not indexable")

    document = to_search_document(row, attributes, today=today)
    return ReconcileDecision("upsert", listing_id, document=document)


def _row_or_none(value: Any, name: str) -> Optional[Mapping[str, Any]]:
    if not value:
        return None
    if not isinstance(value, Mapping):
        raise InvalidChangeEvent(f"{name} must be an object")
    return value


class IndexSynchronizer:
    def __init__(
        self,
        store: Optional[ListingStore] = None,
        client: Optional[TypesenseClient] = None,
        collection: Optional[str] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.store = store or ListingStore()
        self._client = client
        self.collection = collection or get_settings().collection_name
        self._today = today or date.today

    @property
    def client(self) -> TypesenseClient:
        if self._client is None:
            self._client = create_admin_client()
        return self._client

    def apply(self, decision: ReconcileDecision) -> ReconcileDecision:
        if decision.action == "upsert":
            self.client.upsert_document(self.collection, decision.document)
            logger.info("Upserted document %s", decision.listing_id)
        elif decision.action == "delete":
            self.remove(decision.listing_id)
        else:
            logger.info("Skipping listing %s: %s", decision.listing_id, decision.reason)
        return decision

    def remove(self, listing_id: str) -> bool:
        """Delete one document; an already-absent document counts as success."""
        deleted = self.client.delete_document(self.collection, str(listing_id))
        if deleted:
            logger.info("Removed document %s", listing_id)
        else:
            logger.info("Document %s was not indexed; nothing to remove", listing_id)
        return deleted

    def _attributes_for(self, row: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        if not is_eligible(row):
            return []
        return self.store.fetch_attributes([row["id"]]).get(str(row["id"]), [])

    def project_and_upsert(self, listing_id: str) -> ReconcileDecision:
        """Index one listing after a moderation change; ineligible rows are a no-op."""
        row = self.store.fetch_listing(listing_id)
        if row is None:
            raise ListingNotFound(f"listing {listing_id} not found")
        decision = reconcile(
            listing_id,
            row,
            self._attributes_for(row),
            previously_indexed=False,
            today=self._today(),
        )
        return self.apply(decision)

    def handle_change_event(self, event: Mapping[str, Any]) -> ReconcileDecision:
        """React to an INSERT/UPDATE/DELETE notification for one listing.

        The current row is re-read from the store so a stale or reordered event
        still converges on the latest state.
        """
        if not isinstance(event, Mapping):
            raise InvalidChangeEvent("change event must be a JSON object")
        event_type = str(event.get("type") or "").upper()
        record = _row_or_none(event.get("record"), "record")
        old_record = _row_or_none(event.get("old_record"), "old_record")
        if event_type not in EVENT_TYPES:
            raise InvalidChangeEvent(f"unsupported event type {event.get('type')!r}")

        if event_type == "DELETE":
            source = old_record or record
            if not source or not source.get("id"):
                raise InvalidChangeEvent("DELETE event without a listing id")
            logger.info("Processing DELETE event for %s", source["id"])
            return self.apply(ReconcileDecision("delete", str(source["id"]), reason="listing deleted"))

        if not record or not record.get("id"):
            raise InvalidChangeEvent(f"{event_type} event without a record")

        listing_id = str(record["id"])
        logger.info("Processing %s event for %s", event_type, listing_id)
        row = self.store.fetch_listing(listing_id)
        decision = reconcile(
            listing_id,
            row,
            self._attributes_for(row),
            previously_indexed=False if event_type == "INSERT" else None,
            today=self._today(),
        )
        return self.apply(decision)

    def reindex_all(
        self,
        batch_size: int = 100,
        on_progress: Optional[Callable[[ReindexReport], None]] = None,
    ) -> ReindexReport:
        """Rebuild every eligible document in fixed-size batches.

        A batch whose source rows cannot be read aborts the run. Documents the
        index rejects are counted and logged and the run carries on.
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        try:
            total = self.store.count_eligible()
        except SourceReadError as exc:
            raise ReindexAborted(f"failed to count listings: {exc}") from exc

        report = ReindexReport(requested=total)
        logger.info("Found %d listings to index", total)

        offset = 0
        while offset < total:
            try:
                rows = self.store.fetch_eligible_page(offset, batch_size)
                attributes = self.store.fetch_attributes(row["id"] for row in rows)
            except SourceReadError as exc:
                raise ReindexAborted(f"failed to fetch listings at offset {offset}: {exc}") from exc

            if not rows:
                logger.warning("Listing store returned no rows at offset %d of %d", offset, total)
                break

            today = self._today()
            documents = []
            for row in rows:
                try:
                    document = to_search_document(row, attributes.get(str(row["id"]), []), today=today)
                except ValueError as exc:
                    logger.warning("Cannot project listing %s: %s", row["id"], exc)
                    report.failed += 1
                    report.failures.append({"id": str(row["id"]), "error": str(exc)})
                    continue
                if document is None:
                    logger.debug("Listing %s became ineligible during reindex", row["id"])
                    continue
                documents.append(document)

            self._import_batch(documents, report)
            report.batches += 1
            if on_progress:
                on_progress(report)
            offset += batch_size

        return report

    def _import_batch(self, documents: List[Dict[str, Any]], report: ReindexReport) -> None:
        if not documents:
            return
        try:
            results = self.client.import_documents(self.collection, documents, action="upsert")
        except TypesenseError as exc:
            logger.error("Batch import of %d documents failed: %s", len(documents), exc)
            results = [{"success": False, "error": str(exc)} for _ in documents]

        failed = []
        for document, result in zip(documents, results):
            if result.get("success"):
                report.succeeded += 1
            else:
                failed.append({"id": document["id"], "error": result.get("error") or "unknown error"})
        # Missing result lines count as failures.
        for document in documents[len(results):]:
            failed.append({"id": document["id"], "error": "no import result"})

        if failed:
            report.failed += len(failed)
            report.failures.extend(failed)
            logger.warning("%d documents failed to import", len(failed))
            for failure in failed[:MAX_LOGGED_FAILURES]:
                logger.warning("  - %s: %s", failure["id"], failure["error"])

    def document_count(self) -> int:
        return int(self.client.retrieve_collection(self.collection).get("num_documents", 0))

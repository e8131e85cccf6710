"""Admin review queue for low-confidence or uncertain extractions."""

from __future__ import annotations

import hashlib
import logging
import threading
import uuid
from typing import Any, Dict, Iterable, List

from pydantic import TypeAdapter

from .config import ExtractionConfig
from .errors import ReviewItemNotFoundError, ReviewTransitionError
from .models import (
    CorrectionRecord,
    ExtractionResult,
    ReviewDecision,
    ReviewItem,
    ReviewStatusFilter,
    utc_now_iso,
)
from .store import BackgroundWriter, DecisionStore, InMemoryStore

_log = logging.getLogger(__name__)

_STATUS_FILTER = TypeAdapter(ReviewStatusFilter)
REVIEW_STATUSES = ("pending", "approved", "corrected", "rejected")

LOW_CONFIDENCE_REASON = "Low confidence extraction"
UNCERTAIN_ITEMS_REASON = "Contains uncertain items"


def review_item_id(result: ExtractionResult) -> str:
    if result.incident_id:
        return f"rev_{result.incident_id}"
    digest = hashlib.sha1(result.original_text.encode("utf-8")).hexdigest()[:12]
    return f"rev_text_{digest}"


class ReviewWorkflow:
    """Review items keyed ``rev_<incidentId>`` with one-way decisions.

    In-memory state is authoritative for this process and is updated before
    the write is handed to the background writer.
    """

    def __init__(
        self,
        store: DecisionStore | None = None,
        *,
        config: ExtractionConfig | None = None,
        writer: BackgroundWriter | None = None,
        corrections_store: DecisionStore | None = None,
    ) -> None:
        self.store = store or InMemoryStore()
        self.corrections_store = corrections_store or InMemoryStore()
        self.config = config or ExtractionConfig()
        self.writer = writer or BackgroundWriter()
        self._lock = threading.Lock()
        self._items: Dict[str, ReviewItem] = {}
        self._corrections: Dict[str, CorrectionRecord] = {}
        self.load()

    def load(self) -> None:
        items = {k: ReviewItem.model_validate(v) for k, v in self.store.read_all().items()}
        corrections = {k: CorrectionRecord.model_validate(v) for k, v in self.corrections_store.read_all().items()}
        with self._lock:
            self._items = items
            self._corrections = corrections
        _log.debug("Loaded %d review items and %d corrections", len(items), len(corrections))

    def _reason(self, result: ExtractionResult) -> str:
        if result.confidence < self.config.llm_threshold:
            return LOW_CONFIDENCE_REASON
        return UNCERTAIN_ITEMS_REASON

    def enqueue(self, result: ExtractionResult) -> ReviewItem | None:
        """Queue *result* for review; returns the new item, or None if nothing was queued."""
        if not result.needs_review:
            return None
        item_id = review_item_id(result)
        with self._lock:
            if item_id in self._items:
                return None
            item = ReviewItem(
                id=item_id,
                incident_id=result.incident_id,
                original_text=result.original_text,
                extracted_data=result.to_json_dict(),
                confidence=result.confidence,
                reason=self._reason(result),
            )
            self._items[item_id] = item
        self._persist(item)
        _log.info("Queued %s for review: %s (confidence %.2f)", item_id, item.reason, item.confidence)
        return item

    def build_queue(self, results: Iterable[ExtractionResult]) -> List[ReviewItem]:
        created = [self.enqueue(result) for result in results]
        return [item for item in created if item is not None]

    def get(self, item_id: str) -> ReviewItem:
        with self._lock:
            item = self._items.get(item_id)
        if item is None:
            raise ReviewItemNotFoundError(item_id)
        return item

    def list_items(self, status: str = "pending") -> List[ReviewItem]:
        wanted = _STATUS_FILTER.validate_python(status)
        with self._lock:
            items = list(self._items.values())
        if wanted != "all":
            items = [item for item in items if item.status == wanted]
        # Reverse first so equal timestamps still list the latest insert first.
        return sorted(reversed(items), key=lambda item: item.created_at, reverse=True)

    def decide(
        self,
        item_id: str,
        status: str,
        *,
        reviewed_by: str,
        admin_notes: str | None = None,
        corrected_data: Dict[str, Any] | None = None,
    ) -> ReviewItem:
        decision = ReviewDecision(
            status=status,
            reviewed_by=reviewed_by,
            admin_notes=admin_notes,
            corrected_data=corrected_data,
        )
        correction: CorrectionRecord | None = None
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                raise ReviewItemNotFoundError(item_id)
            if item.status != "pending":
                raise ReviewTransitionError(item_id, item.status)
            item = item.model_copy(
                update={
                    "status": decision.status,
                    "reviewed_by": decision.reviewed_by,
                    "admin_notes": decision.admin_notes,
                    "corrected_data": decision.corrected_data,
                    "reviewed_at": utc_now_iso(),
                }
            )
            self._items[item_id] = item
            if decision.status == "corrected" and decision.corrected_data:
                correction = CorrectionRecord(
                    id=f"corr_{uuid.uuid4().hex[:12]}",
                    incident_id=item.incident_id,
                    original_text=item.original_text,
                    original_extraction=item.extracted_data,
                    corrected_data=decision.corrected_data,
                )
                self._corrections[correction.id] = correction

        self._persist(item)
        if correction is not None:
            record = correction.to_json_dict()
            self.writer.submit(
                f"correction {correction.id}",
                lambda: self.corrections_store.upsert(correction.id, record),
            )
        _log.info("Review %s marked %s by %s", item_id, item.status, item.reviewed_by)
        return item

    def corrections(self) -> List[CorrectionRecord]:
        with self._lock:
            return sorted(self._corrections.values(), key=lambda c: c.created_at)

    def counts(self) -> Dict[str, int]:
        with self._lock:
            statuses = [item.status for item in self._items.values()]
        totals = {status: statuses.count(status) for status in REVIEW_STATUSES}
        totals["total"] = len(statuses)
        return totals

    def _persist(self, item: ReviewItem) -> None:
        record = item.to_json_dict()
        self.writer.submit(f"review {item.id}", lambda: self.store.upsert(item.id, record))

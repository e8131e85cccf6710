"""Per-need delivery status, kept apart from aggregation runs."""

from __future__ import annotations

import logging
import threading
from typing import Dict

from .aggregation import supply_key
from .models import FulfillmentRecord, FulfillmentStatus
from .store import BackgroundWriter, DecisionStore, InMemoryStore

_log = logging.getLogger(__name__)


def normalize_key(key: str) -> str:
    category, sep, item = key.partition("-")
    if not sep:
        return " ".join(key.casefold().split())
    return supply_key(category, item)


class FulfillmentTracker:
    """``pending -> delivered`` is the only transition, and it is idempotent."""

    def __init__(self, store: DecisionStore | None = None, *, writer: BackgroundWriter | None = None) -> None:
        self.store = store or InMemoryStore()
        self.writer = writer or BackgroundWriter()
        self._lock = threading.Lock()
        self._records: Dict[str, FulfillmentRecord] = {
            k: FulfillmentRecord.model_validate(v) for k, v in self.store.read_all().items()
        }

    def mark_delivered(self, key: str) -> FulfillmentRecord:
        norm = normalize_key(key)
        with self._lock:
            existing = self._records.get(norm)
            if existing is not None and existing.status == "delivered":
                return existing
            record = FulfillmentRecord(key=norm, status="delivered")
            self._records[norm] = record
        payload = record.to_json_dict()
        self.writer.submit(f"fulfillment {norm}", lambda: self.store.upsert(norm, payload))
        _log.info("Marked %s delivered", norm)
        return record

    def status(self, key: str) -> FulfillmentStatus:
        with self._lock:
            record = self._records.get(normalize_key(key))
        return record.status if record else "pending"

    def statuses(self) -> Dict[str, FulfillmentStatus]:
        with self._lock:
            return {k: r.status for k, r in self._records.items()}

"""Persistence for review decisions, corrections and fulfillment status."""

from __future__ import annotations

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List

from sqlalchemy import UniqueConstraint
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine, select

from .errors import StoreError
from .settings import default_db_path

_log = logging.getLogger(__name__)


class DecisionRecord(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("collection", "key"),)

    id: int | None = Field(default=None, primary_key=True)
    collection: str = Field(index=True)
    key: str = Field(index=True)
    payload_json: str
    updated_at: str


class DecisionStore(ABC):
    """Keyed record storage. Writes replace the whole record."""

    @abstractmethod
    def read_all(self) -> Dict[str, dict]:
        """Return every stored record keyed by its key."""

    @abstractmethod
    def upsert(self, key: str, record: dict) -> None:
        """Insert or replace the record stored under *key*."""


class InMemoryStore(DecisionStore):
    def __init__(self) -> None:
        self._records: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def read_all(self) -> Dict[str, dict]:
        with self._lock:
            return {k: dict(v) for k, v in self._records.items()}

    def upsert(self, key: str, record: dict) -> None:
        with self._lock:
            self._records[key] = dict(record)


def build_engine(path: Path | None = None):
    db_path = path or default_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(f"sqlite:///{db_path}")


def init_db(path: Path | None = None):
    engine = build_engine(path)
    SQLModel.metadata.create_all(engine)
    return engine


class SQLModelStore(DecisionStore):
    """SQLite-backed store; several collections share one table."""

    def __init__(self, path: Path | None = None, collection: str = "reviews") -> None:
        self.path = path or default_db_path()
        self.collection = collection
        self._engine = init_db(self.path)

    def read_all(self) -> Dict[str, dict]:
        try:
            with Session(self._engine) as session:
                rows = session.exec(
                    select(DecisionRecord).where(DecisionRecord.collection == self.collection)
                ).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Reading {self.collection} from {self.path} failed: {exc}") from exc
        return {row.key: json.loads(row.payload_json) for row in rows}

    def upsert(self, key: str, record: dict) -> None:
        payload = json.dumps(record, ensure_ascii=False)
        now = datetime.now(timezone.utc).isoformat()
        # Single statement so concurrent writers never leave two rows for one key.
        statement = sqlite_insert(DecisionRecord).values(
            collection=self.collection, key=key, payload_json=payload, updated_at=now
        )
        statement = statement.on_conflict_do_update(
            index_elements=["collection", "key"],
            set_={"payload_json": payload, "updated_at": now},
        )
        try:
            with self._engine.begin() as connection:
                connection.execute(statement)
        except SQLAlchemyError as exc:
            raise StoreError(f"Writing {self.collection}/{key} to {self.path} failed: {exc}") from exc


class BackgroundWriter:
    """Run store writes off the caller's thread.

    Writes go through a single worker so they land in submission order.
    Failed writes are retried ``retries`` times and then logged; they never
    reach the caller.
    """

    def __init__(self, *, retries: int = 3, backoff_seconds: float = 0.05) -> None:
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self.failed_count = 0
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="store-writer")
        self._pending: List[Future] = []
        self._lock = threading.Lock()

    def submit(self, description: str, write: Callable[[], Any]) -> Future:
        future = self._executor.submit(self._run, description, write)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)
        return future

    def _run(self, description: str, write: Callable[[], Any]) -> bool:
        attempts = 1 + self.retries
        for attempt in range(1, attempts + 1):
            try:
                write()
                return True
            except Exception as exc:  # backend errors vary by store
                _log.warning("Persisting %s failed (attempt %d/%d): %s", description, attempt, attempts, exc)
                if attempt < attempts:
                    time.sleep(self.backoff_seconds * attempt)
        with self._lock:
            self.failed_count += 1
        _log.error("Giving up on persisting %s after %d attempts", description, attempts)
        return False

    def flush(self, timeout: float | None = None) -> None:
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def close(self) -> None:
        self.flush()
        self._executor.shutdown(wait=True)

"""Confidence-gated escalation of keyword extractions to an LLM classifier."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from .config import ExtractionConfig
from .llm_extraction import LLMClassifier
from .models import ExtractionResult
from .taxonomy import taxonomy_summary

_log = logging.getLogger(__name__)


class EscalationPolicy:
    """Decide whether to call the LLM and whether the call succeeded.

    Each attempt is waited on for at most ``llm_timeout_seconds``; exceptions
    and timeouts are retried up to ``llm_max_retries`` times. Any failure
    returns the keyword result, so :meth:`escalate` never raises.
    """

    def __init__(
        self,
        classifier: LLMClassifier | None = None,
        *,
        config: ExtractionConfig | None = None,
        max_workers: int = 4,
    ) -> None:
        self.classifier = classifier
        self.config = config or ExtractionConfig()
        self._executor: ThreadPoolExecutor | None = None
        self._max_workers = max_workers
        self._lock = threading.Lock()
        self._stats = {
            "attempted_count": 0,
            "escalated_count": 0,
            "fallback_count": 0,
            "timeout_count": 0,
            "provider_error_count": 0,
            "invalid_output_count": 0,
        }

    def is_configured(self) -> bool:
        if self.classifier is None:
            return False
        try:
            return bool(self.classifier.is_configured())
        except Exception as exc:  # collaborator is a black box
            _log.warning("LLM classifier configuration check failed: %s", exc)
            return False

    def should_escalate(self, confidence: float, use_llm: bool | None = None) -> bool:
        enabled = self.config.use_llm if use_llm is None else use_llm
        if not enabled or not self.is_configured():
            return False
        return confidence < self.config.llm_threshold

    def escalate(self, text: str, keyword_result: ExtractionResult) -> ExtractionResult:
        if self.classifier is None:
            return keyword_result.model_copy(update={"extraction_method": "keyword"})
        self._bump("attempted_count")
        summary = taxonomy_summary()
        attempts = 1 + self.config.llm_max_retries

        for attempt in range(1, attempts + 1):
            future = self._pool().submit(self.classifier.classify, text, summary)
            try:
                candidate = future.result(timeout=self.config.llm_timeout_seconds)
            except FutureTimeoutError:
                future.cancel()
                self._bump("timeout_count")
                _log.warning(
                    "LLM extraction timed out after %.1fs (attempt %d/%d)",
                    self.config.llm_timeout_seconds,
                    attempt,
                    attempts,
                )
                continue
            except Exception as exc:  # collaborator is a black box
                self._bump("provider_error_count")
                _log.warning("LLM extraction failed (attempt %d/%d): %s", attempt, attempts, exc)
                continue

            if not isinstance(candidate, ExtractionResult):
                self._bump("invalid_output_count")
                _log.info("LLM returned no usable extraction; keeping keyword result")
                break
            self._bump("escalated_count")
            return candidate.model_copy(update={"extraction_method": "llm"})

        self._bump("fallback_count")
        return keyword_result.model_copy(update={"extraction_method": "keyword"})

    def stats(self) -> dict:
        with self._lock:
            return {"enabled": self.is_configured(), **self._stats}

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="llm-escalation"
                )
            return self._executor

    def _bump(self, key: str) -> None:
        with self._lock:
            self._stats[key] += 1

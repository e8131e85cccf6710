import threading
import time

from relief_needs.config import ExtractionConfig
from relief_needs.escalation import EscalationPolicy
from relief_needs.extractor import extract
from relief_needs.llm_extraction import LLMClassifier
from relief_needs.models import ExtractionResult, SupplyMention

LOW_CONFIDENCE_TEXT = "Hello, please check on the people near the river"


class StubClassifier(LLMClassifier):
    def __init__(self, outcomes, *, configured: bool = True) -> None:
        self.outcomes = list(outcomes)
        self.configured = configured
        self.calls = 0
        self._lock = threading.Lock()

    def is_configured(self) -> bool:
        return self.configured

    def classify(self, text, taxonomy_summary):
        with self._lock:
            self.calls += 1
            outcome = self.outcomes.pop(0) if self.outcomes else None
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            return outcome()
        return outcome


def _llm_result(confidence: float = 0.9) -> ExtractionResult:
    return ExtractionResult(
        original_text="ignored",
        supplies=[SupplyMention(item="rice", category="food", quantity=10, unit="kg", priority="high")],
        urgency="high",
        confidence=confidence,
        extraction_method="llm",
    )


def _config(**overrides) -> ExtractionConfig:
    values = {"use_llm": True, "llm_max_retries": 2, "llm_timeout_seconds": 2.0}
    values.update(overrides)
    return ExtractionConfig(**values)


def test_low_confidence_escalates_to_llm() -> None:
    classifier = StubClassifier([_llm_result()])
    policy = EscalationPolicy(classifier, config=_config())

    result = extract(LOW_CONFIDENCE_TEXT, incident_id="inc-7", escalation=policy)

    assert result.extraction_method == "llm"
    assert result.incident_id == "inc-7"
    assert result.original_text == LOW_CONFIDENCE_TEXT
    assert result.supplies[0].item == "rice"
    assert result.auto_approved is True
    assert policy.stats()["escalated_count"] == 1
    policy.close()


def test_high_confidence_skips_llm() -> None:
    classifier = StubClassifier([_llm_result()])
    policy = EscalationPolicy(classifier, config=_config(llm_threshold=0.3))

    result = extract("Need 150 food packets for 120 children", escalation=policy)

    assert result.extraction_method == "keyword"
    assert classifier.calls == 0
    policy.close()


def test_disabled_or_unconfigured_never_calls_classifier() -> None:
    classifier = StubClassifier([_llm_result()])
    policy = EscalationPolicy(classifier, config=_config(use_llm=False))
    assert extract(LOW_CONFIDENCE_TEXT, escalation=policy).extraction_method == "keyword"

    unconfigured = StubClassifier([_llm_result()], configured=False)
    policy2 = EscalationPolicy(unconfigured, config=_config())
    assert extract(LOW_CONFIDENCE_TEXT, escalation=policy2).extraction_method == "keyword"
    assert EscalationPolicy(None, config=_config()).is_configured() is False

    assert classifier.calls == 0
    assert unconfigured.calls == 0


def test_use_llm_argument_overrides_config() -> None:
    classifier = StubClassifier([_llm_result()])
    policy = EscalationPolicy(classifier, config=_config(use_llm=False))

    result = extract(LOW_CONFIDENCE_TEXT, use_llm=True, escalation=policy)

    assert result.extraction_method == "llm"
    policy.close()


def test_errors_are_retried_then_succeed() -> None:
    classifier = StubClassifier([RuntimeError("boom"), _llm_result()])
    policy = EscalationPolicy(classifier, config=_config())

    result = extract(LOW_CONFIDENCE_TEXT, escalation=policy)

    assert result.extraction_method == "llm"
    assert classifier.calls == 2
    assert policy.stats()["provider_error_count"] == 1
    policy.close()


def test_retries_are_bounded_and_fall_back_to_keywords() -> None:
    classifier = StubClassifier([RuntimeError("boom")] * 10)
    policy = EscalationPolicy(classifier, config=_config(llm_max_retries=2))

    result = extract(LOW_CONFIDENCE_TEXT, escalation=policy)

    assert result.extraction_method == "keyword"
    assert classifier.calls == 3
    stats = policy.stats()
    assert stats["fallback_count"] == 1
    assert stats["provider_error_count"] == 3
    policy.close()


def test_none_output_falls_back_without_retry() -> None:
    classifier = StubClassifier([None, _llm_result()])
    policy = EscalationPolicy(classifier, config=_config())

    result = extract(LOW_CONFIDENCE_TEXT, escalation=policy)

    assert result.extraction_method == "keyword"
    assert classifier.calls == 1
    assert policy.stats()["invalid_output_count"] == 1
    policy.close()


def test_timeout_falls_back_to_keywords() -> None:
    def slow():
        time.sleep(0.5)
        return _llm_result()

    classifier = StubClassifier([slow, slow])
    policy = EscalationPolicy(classifier, config=_config(llm_max_retries=1, llm_timeout_seconds=0.05))

    result = extract(LOW_CONFIDENCE_TEXT, escalation=policy)

    assert result.extraction_method == "keyword"
    assert policy.stats()["timeout_count"] == 2
    policy.close()


def test_should_escalate_uses_threshold() -> None:
    policy = EscalationPolicy(StubClassifier([]), config=_config(llm_threshold=0.6))
    assert policy.should_escalate(0.59) is True
    assert policy.should_escalate(0.6) is False
    assert policy.should_escalate(0.1, use_llm=False) is False

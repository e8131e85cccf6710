from typing import Any

from relief_needs.llm_extraction import EXTRACTION_SCHEMA, ProviderClassifier, build_result_from_candidate
from relief_needs.llm_provider import LLMProvider
from relief_needs.taxonomy import taxonomy_summary


class FakeProvider(LLMProvider):
    def __init__(self, payload: Any, configured: bool = True) -> None:
        self.payload = payload
        self.configured = configured
        self.calls: list[dict] = []

    def name(self) -> str:
        return "fake"

    def is_configured(self) -> bool:
        return self.configured

    def complete(self, **kwargs: Any):
        self.calls.append(kwargs)
        return self.payload


def _candidate(**overrides) -> dict:
    payload = {
        "supplies_needed": [
            {"item": "Rice", "quantity": 50, "unit": "kilos", "priority": "high"},
            {"item": "insulin", "quantity": None, "unit": None, "priority": "critical"},
        ],
        "locations": [{"type": "temple", "name": "Kelaniya Temple"}],
        "vulnerable_groups": [
            {"type": "children", "count": 30, "special_needs": None},
            {"type": "kids", "count": 45, "special_needs": "school age"},
        ],
        "urgency": "critical",
        "confidence": 0.82,
    }
    payload.update(overrides)
    return payload


def test_build_result_maps_onto_taxonomy() -> None:
    result = build_result_from_candidate(_candidate(), "original text")

    assert result is not None
    assert result.extraction_method == "llm"
    assert result.confidence == 0.82
    assert result.urgency == "critical"
    supplies = {s.item: s for s in result.supplies}
    assert supplies["rice"].category == "food"
    assert supplies["rice"].unit == "kg"
    assert supplies["insulin"].category == "medical"
    assert supplies["insulin"].unit is None
    assert [(loc.type, loc.name) for loc in result.locations] == [("religious", "Kelaniya Temple")]
    assert len(result.vulnerable_groups) == 1
    children = result.vulnerable_groups[0]
    assert children.group == "children"
    assert children.count == 45
    assert children.special_needs == "school age"
    assert result.uncertain_items == []


def test_unknown_items_become_uncertain() -> None:
    candidate = _candidate(
        supplies_needed=[{"item": "spaceship", "quantity": 1, "unit": "units", "priority": "low"}],
        locations=[{"type": "moon base", "name": None}],
    )
    result = build_result_from_candidate(candidate, "text")

    assert result.supplies[0].category == "other"
    assert "unclassified supply: spaceship" in result.uncertain_items
    assert "unclassified location: moon base" in result.uncertain_items
    assert result.locations == []


def test_invalid_payloads_return_none() -> None:
    assert build_result_from_candidate(None, "text") is None
    assert build_result_from_candidate("not json", "text") is None
    assert build_result_from_candidate(_candidate(confidence="high"), "text") is None


def test_missing_confidence_defaults() -> None:
    candidate = _candidate()
    del candidate["confidence"]
    result = build_result_from_candidate(candidate, "text")
    assert result.confidence == 0.8


def test_unknown_urgency_defaults_to_none() -> None:
    result = build_result_from_candidate(_candidate(urgency="extreme"), "text")
    assert result.urgency == "none"


def test_provider_classifier_sends_schema_and_taxonomy() -> None:
    provider = FakeProvider(_candidate())
    classifier = ProviderClassifier(provider, timeout=5.0)

    result = classifier.classify("Need rice at the temple", taxonomy_summary())

    assert result is not None
    assert result.original_text == "Need rice at the temple"
    call = provider.calls[0]
    assert call["json_schema"] is EXTRACTION_SCHEMA
    assert call["timeout"] == 5.0
    assert "medical" in call["user"]


def test_provider_classifier_reports_configuration() -> None:
    assert ProviderClassifier(FakeProvider({}, configured=False)).is_configured() is False
    assert ProviderClassifier(FakeProvider(None)).classify("text", {}) is None

from relief_needs.config import ExtractionConfig
from relief_needs.extractor import (
    apply_review_flags,
    compute_confidence,
    extract,
    extract_incidents,
)
from relief_needs.models import ExtractionResult, SupplyMention


def test_extract_spec_example() -> None:
    result = extract(
        "Need 150 food packets and 200 water bottles for 120 children",
        incident_id="inc-1",
    )
    assert result is not None
    assert result.incident_id == "inc-1"
    supplies = {s.item: s for s in result.supplies}
    assert supplies["food packets"].quantity == 150
    assert supplies["food packets"].unit == "packs"
    assert supplies["water bottles"].quantity == 200
    assert supplies["water bottles"].unit == "bottles"
    assert [(g.group, g.count) for g in result.vulnerable_groups] == [("children", 120)]
    assert result.urgency == "medium"
    assert 0.5 <= result.confidence < 0.85
    assert result.needs_review is False
    assert result.auto_approved is False
    assert result.extraction_method == "keyword"


def test_extract_empty_text_returns_none() -> None:
    assert extract("") is None
    assert extract("   \n ") is None
    assert extract(None) is None


def test_text_without_keywords_is_low_confidence() -> None:
    result = extract("Hello there, just checking in")
    assert result is not None
    assert result.supplies == []
    assert result.confidence < 0.3
    assert result.needs_review is True


def test_local_terms_mark_result_uncertain() -> None:
    result = extract("Need 100 food packets and watura for 40 children at the pansala")
    assert result is not None
    assert "unmapped local term: watura" in result.uncertain_items
    assert "unmapped local term: pansala" in result.uncertain_items
    assert result.needs_review is True


def test_confidence_monotonic_in_categories_and_quantities() -> None:
    rice = SupplyMention(item="rice", category="food", quantity=None, priority="high")
    rice_qty = SupplyMention(item="rice", category="food", quantity=10, unit="kg", priority="high")
    tents = SupplyMention(item="tents", category="shelter", quantity=None, priority="high")

    base = compute_confidence([rice], [], [], "none")
    assert compute_confidence([rice_qty], [], [], "none") > base
    assert compute_confidence([rice, tents], [], [], "none") > base
    assert compute_confidence([rice], [], [], "critical") > compute_confidence([rice], [], [], "medium") > base
    assert compute_confidence([], [], [], "none") == 0.0
    assert compute_confidence([], [], [], "critical") < 0.3


def test_confidence_is_bounded() -> None:
    supplies = [
        SupplyMention(item=f"item{i}", category=f"cat{i}", quantity=i + 1, unit="units", priority="high")
        for i in range(8)
    ]
    assert compute_confidence(supplies, [], [], "critical") <= 1.0


def test_apply_review_flags_thresholds() -> None:
    config = ExtractionConfig()
    high = ExtractionResult(original_text="x", confidence=0.9)
    mid = ExtractionResult(original_text="x", confidence=0.7)
    low = ExtractionResult(original_text="x", confidence=0.4)
    uncertain = ExtractionResult(original_text="x", confidence=0.95, uncertain_items=["unmapped local term: hal"])

    assert apply_review_flags(high, config).auto_approved is True
    assert apply_review_flags(high, config).needs_review is False
    assert apply_review_flags(mid, config).auto_approved is False
    assert apply_review_flags(mid, config).needs_review is False
    assert apply_review_flags(low, config).needs_review is True
    flagged = apply_review_flags(uncertain, config)
    assert flagged.needs_review is True
    assert flagged.auto_approved is False


def test_extract_result_serializes_camel_case() -> None:
    result = extract("Need 20 tents", incident_id="inc-9")
    payload = result.to_json_dict()
    assert payload["incidentId"] == "inc-9"
    assert payload["extractionMethod"] == "keyword"
    assert "needsReview" in payload
    assert "uncertainItems" in payload


def test_extract_incidents_skips_empty_descriptions() -> None:
    incidents = [
        {"id": "a", "description": "Need 20 tents"},
        {"id": "b", "description": ""},
        {"id": "c"},
        {"id": "d", "description": "Need 5 kg rice", "unknownField": 1},
    ]
    results = extract_incidents(incidents)
    assert [r.incident_id for r in results] == ["a", "d"]


def test_extract_incidents_thread_pool_preserves_order() -> None:
    incidents = [{"id": f"i{n}", "description": f"Need {n} tents"} for n in range(1, 9)]
    results = extract_incidents(incidents, max_workers=4)
    assert [r.incident_id for r in results] == [f"i{n}" for n in range(1, 9)]
    assert [r.supplies[0].quantity for r in results] == list(range(1, 9))

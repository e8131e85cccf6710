import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from relief_needs.config import ExtractionConfig, load_extraction_config


def test_defaults() -> None:
    cfg = ExtractionConfig()
    assert cfg.use_llm is False
    assert cfg.llm_threshold == 0.6
    assert cfg.auto_approve_threshold == 0.85
    assert cfg.review_threshold == 0.5
    assert cfg.llm_max_retries == 2


def test_threshold_out_of_range() -> None:
    try:
        ExtractionConfig(llm_threshold=1.5)
        assert False, "Expected ValidationError"
    except ValidationError as exc:
        assert "less than or equal" in str(exc)


def test_review_threshold_must_not_exceed_auto_approve() -> None:
    with pytest.raises(ValidationError, match="review_threshold"):
        ExtractionConfig(review_threshold=0.9, auto_approve_threshold=0.8)


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        ExtractionConfig(llm_timeout_seconds=0)


def test_config_is_frozen() -> None:
    cfg = ExtractionConfig()
    with pytest.raises(ValidationError):
        cfg.use_llm = True


def test_load_extraction_config_layers_file_over_flags(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("RN_FLAG_LLM_THRESHOLD", "0.55")
    override = tmp_path / "extraction.json"
    override.write_text(json.dumps({"llm_max_retries": 4}), encoding="utf-8")

    cfg = load_extraction_config(override, flags_path=tmp_path / "absent.json")

    assert cfg.llm_threshold == 0.55
    assert cfg.llm_max_retries == 4


def test_llm_switch_comes_from_feature_flags(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("USE_LLM", "true")
    assert load_extraction_config(flags_path=tmp_path / "absent.json").use_llm is True

    monkeypatch.setenv("USE_LLM", "false")
    assert load_extraction_config(flags_path=tmp_path / "absent.json").use_llm is False

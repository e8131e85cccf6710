import json
from pathlib import Path

from relief_needs.feature_flags import load_feature_flags


def test_load_feature_flags_from_file(tmp_path: Path) -> None:
    path = tmp_path / "feature_flags.json"
    path.write_text(
        json.dumps(
            {
                "llm_extraction_enabled": True,
                "llm_threshold": "0.4",
                "llm_max_retries": 5,
                "unknown_flag": "ignored",
            }
        ),
        encoding="utf-8",
    )
    flags = load_feature_flags(path)
    assert flags["llm_extraction_enabled"] is True
    assert flags["llm_threshold"] == 0.4
    assert flags["llm_max_retries"] == 5
    assert "unknown_flag" not in flags


def test_missing_or_broken_file_uses_defaults(tmp_path: Path) -> None:
    flags = load_feature_flags(tmp_path / "absent.json")
    assert flags["llm_extraction_enabled"] is False
    assert flags["review_threshold"] == 0.5

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert load_feature_flags(broken)["auto_approve_threshold"] == 0.85


def test_env_overrides(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("USE_LLM", "true")
    monkeypatch.setenv("LLM_THRESHOLD", "0.7")
    monkeypatch.setenv("RN_FLAG_LLM_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("RN_FLAG_AUTO_ENQUEUE_REVIEWS", "off")

    flags = load_feature_flags(tmp_path / "absent.json")

    assert flags["llm_extraction_enabled"] is True
    assert flags["llm_threshold"] == 0.7
    assert flags["llm_timeout_seconds"] == 12.5
    assert flags["auto_enqueue_reviews"] is False

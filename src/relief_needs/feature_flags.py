"""Centralized feature-flag loader for extraction and review behavior."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

_log = logging.getLogger(__name__)

DEFAULT_FEATURE_FLAGS: dict[str, Any] = {
    "llm_extraction_enabled": False,
    "llm_threshold": 0.6,
    "auto_approve_threshold": 0.85,
    "review_threshold": 0.5,
    "llm_max_retries": 2,
    "llm_timeout_seconds": 30.0,
    "auto_enqueue_reviews": True,
}


def default_feature_flags_path() -> Path:
    return Path.cwd() / "config" / "feature_flags.json"


def _coerce_flag_value(key: str, value: Any) -> Any:
    default = DEFAULT_FEATURE_FLAGS.get(key)
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raw = str(value).strip().lower()
        return raw in {"1", "true", "yes", "on"}
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            return default
    if isinstance(default, float):
        try:
            return float(value)
        except (TypeError, ValueError):
            return default
    return value


def load_feature_flags(path: Path | None = None) -> dict[str, Any]:
    flags = dict(DEFAULT_FEATURE_FLAGS)
    candidate = path or default_feature_flags_path()
    if candidate.exists():
        try:
            payload = json.loads(candidate.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            _log.warning("Ignoring unreadable feature flag file %s: %s", candidate, exc)
            payload = None
        if isinstance(payload, dict):
            for key in DEFAULT_FEATURE_FLAGS:
                if key in payload:
                    flags[key] = _coerce_flag_value(key, payload[key])

    # Env names used by the dashboard deployment.
    legacy_map = {
        "USE_LLM": "llm_extraction_enabled",
        "LLM_THRESHOLD": "llm_threshold",
        "AUTO_APPROVE_THRESHOLD": "auto_approve_threshold",
    }
    for env_key, flag_key in legacy_map.items():
        raw = os.getenv(env_key, "").strip()
        if raw:
            flags[flag_key] = _coerce_flag_value(flag_key, raw)

    # Explicit env override: RN_FLAG_<FLAG_NAME_UPPER>
    for key in DEFAULT_FEATURE_FLAGS:
        env_key = f"RN_FLAG_{key.upper()}"
        raw = os.getenv(env_key, "").strip()
        if raw:
            flags[key] = _coerce_flag_value(key, raw)

    return flags


def get_feature_flag(name: str, default: Any = None) -> Any:
    flags = load_feature_flags()
    if name in flags:
        return flags[name]
    return default

"""Extraction thresholds and escalation settings validated with pydantic."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .feature_flags import load_feature_flags


class ExtractionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    use_llm: bool = False
    llm_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    auto_approve_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    review_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    llm_max_retries: int = Field(default=2, ge=0, le=10)
    llm_timeout_seconds: float = Field(default=30.0, gt=0.0, le=600.0)

    @model_validator(mode="after")
    def validate_threshold_order(self) -> "ExtractionConfig":
        if self.review_threshold > self.auto_approve_threshold:
            raise ValueError("review_threshold must not exceed auto_approve_threshold")
        return self


def load_extraction_config(path: Path | None = None, *, flags_path: Path | None = None) -> ExtractionConfig:
    """Build config from feature flags, then overlay an optional JSON file."""
    flags = load_feature_flags(flags_path)
    payload = {
        "use_llm": flags["llm_extraction_enabled"],
        "llm_threshold": flags["llm_threshold"],
        "auto_approve_threshold": flags["auto_approve_threshold"],
        "review_threshold": flags["review_threshold"],
        "llm_max_retries": flags["llm_max_retries"],
        "llm_timeout_seconds": flags["llm_timeout_seconds"],
    }
    if path is not None:
        payload.update(json.loads(path.read_text(encoding="utf-8")))
    return ExtractionConfig.model_validate(payload)

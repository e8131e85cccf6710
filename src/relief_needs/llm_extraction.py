"""LLM-backed extraction with strict output validation against the taxonomy."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from .llm_provider import LLMProvider, get_provider
from .models import ExtractionResult, LocationMention, SupplyMention, VulnerableGroupMention
from .taxonomy import PRIORITY_LEVELS, classify, get_entry, unit_for_word

_log = logging.getLogger(__name__)

_URGENCY_VALUES = {"critical", "high", "medium", "none"}
_DEFAULT_LLM_CONFIDENCE = 0.8
_UNKNOWN_SUPPLY_ICON = "📦"

EXTRACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["supplies_needed", "locations", "vulnerable_groups", "urgency", "confidence"],
    "properties": {
        "supplies_needed": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["item", "quantity", "unit", "priority"],
                "properties": {
                    "item": {"type": "string", "minLength": 1},
                    "quantity": {"type": ["integer", "null"], "minimum": 0},
                    "unit": {"type": ["string", "null"]},
                    "priority": {"type": "string", "enum": ["critical", "high", "medium", "low"]},
                },
            },
        },
        "locations": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["type", "name"],
                "properties": {
                    "type": {"type": "string"},
                    "name": {"type": ["string", "null"]},
                },
            },
        },
        "vulnerable_groups": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["type", "count", "special_needs"],
                "properties": {
                    "type": {"type": "string"},
                    "count": {"type": ["integer", "null"], "minimum": 0},
                    "special_needs": {"type": ["string", "null"]},
                },
            },
        },
        "urgency": {"type": "string", "enum": ["critical", "high", "medium", "none"]},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
    },
}

_INSTRUCTIONS = (
    "You are a disaster response data extractor. Extract supply needs, affected "
    "locations and vulnerable groups from one incident description. Return JSON only. "
    "Use only the categories listed in the taxonomy. Do not invent quantities: use null "
    "when the text gives no number."
)


class LLMClassifier(ABC):
    """Black-box text classifier invoked under the escalation gate."""

    @abstractmethod
    def classify(self, text: str, taxonomy_summary: dict[str, list[str]]) -> ExtractionResult | None:
        """Return a full extraction for *text*, or ``None`` when unusable."""

    def is_configured(self) -> bool:
        return True


class ProviderClassifier(LLMClassifier):
    """Classifier backed by an :class:`LLMProvider` with structured JSON output."""

    def __init__(self, provider: LLMProvider | None = None, *, timeout: float = 30.0) -> None:
        self._provider = provider or get_provider()
        self._timeout = timeout

    def is_configured(self) -> bool:
        return self._provider.is_configured()

    def classify(self, text: str, taxonomy_summary: dict[str, list[str]]) -> ExtractionResult | None:
        user_payload = {"taxonomy": taxonomy_summary, "description": text[:4000]}
        candidate = self._provider.complete(
            system=_INSTRUCTIONS,
            user=json.dumps(user_payload, ensure_ascii=False),
            json_schema=EXTRACTION_SCHEMA,
            schema_name="incident_extraction",
            timeout=self._timeout,
        )
        result = build_result_from_candidate(candidate, text)
        if result is None:
            _log.warning("LLM returned an unusable extraction payload")
        return result


def build_result_from_candidate(candidate: object, text: str) -> ExtractionResult | None:
    """Validate a raw LLM payload and map it onto the taxonomy."""
    if not isinstance(candidate, dict):
        return None
    confidence = _coerce_confidence(candidate.get("confidence"))
    if confidence is None:
        return None

    uncertain: list[str] = []
    supplies = [
        s for s in (_coerce_supply(raw, uncertain) for raw in _as_list(candidate.get("supplies_needed"))) if s
    ]
    groups = _merge_groups(
        g for g in (_coerce_group(raw, uncertain) for raw in _as_list(candidate.get("vulnerable_groups"))) if g
    )
    locations = [
        loc for loc in (_coerce_location(raw, uncertain) for raw in _as_list(candidate.get("locations"))) if loc
    ]
    urgency = str(candidate.get("urgency", "none")).strip().lower()

    return ExtractionResult(
        original_text=text,
        supplies=supplies,
        locations=locations,
        vulnerable_groups=groups,
        urgency=urgency if urgency in _URGENCY_VALUES else "none",
        confidence=confidence,
        uncertain_items=uncertain,
        extraction_method="llm",
    )


def _as_list(value: object) -> list:
    return value if isinstance(value, list) else []


def _coerce_confidence(value: object) -> float | None:
    if value is None:
        return _DEFAULT_LLM_CONFIDENCE
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return round(min(max(float(value), 0.0), 1.0), 2)


def _coerce_count(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def _coerce_supply(raw: object, uncertain: list[str]) -> SupplyMention | None:
    if not isinstance(raw, dict):
        return None
    item = " ".join(str(raw.get("item", "")).lower().split())
    if not item:
        return None
    quantity = _coerce_count(raw.get("quantity"))
    unit_raw = raw.get("unit")
    unit = None
    if quantity is not None:
        unit_word = unit_raw.strip().lower() if isinstance(unit_raw, str) else ""
        unit = unit_for_word(unit_word) or unit_word or "units"
    priority = str(raw.get("priority", "")).strip().lower()

    classified = classify(item, "supplies")
    if classified is None:
        uncertain.append(f"unclassified supply: {item}")
        return SupplyMention(
            item=item,
            category="other",
            quantity=quantity,
            unit=unit,
            priority=priority if priority in PRIORITY_LEVELS else "medium",
            icon=_UNKNOWN_SUPPLY_ICON,
        )
    return SupplyMention(
        item=item,
        category=classified.subcategory,
        quantity=quantity,
        unit=unit,
        priority=priority if priority in PRIORITY_LEVELS else classified.priority,
        icon=classified.icon,
    )


def _coerce_group(raw: object, uncertain: list[str]) -> VulnerableGroupMention | None:
    if not isinstance(raw, dict):
        return None
    label = str(raw.get("type", "")).strip().lower()
    entry = get_entry("vulnerable_groups", label)
    if entry is None:
        classified = classify(label, "vulnerable_groups")
        entry = get_entry("vulnerable_groups", classified.subcategory) if classified else None
    if entry is None:
        if label:
            uncertain.append(f"unclassified group: {label}")
        return None
    special = raw.get("special_needs")
    return VulnerableGroupMention(
        group=entry.subcategory,
        count=_coerce_count(raw.get("count")),
        special_needs=special.strip() if isinstance(special, str) and special.strip() else None,
        priority=entry.priority,
        icon=entry.icon,
    )


def _merge_groups(groups) -> list[VulnerableGroupMention]:
    merged: dict[str, VulnerableGroupMention] = {}
    for group in groups:
        existing = merged.get(group.group)
        if existing is None:
            merged[group.group] = group
            continue
        count = max((c for c in (existing.count, group.count) if c is not None), default=None)
        merged[group.group] = existing.model_copy(
            update={"count": count, "special_needs": existing.special_needs or group.special_needs}
        )
    return list(merged.values())


def _coerce_location(raw: object, uncertain: list[str]) -> LocationMention | None:
    if not isinstance(raw, dict):
        return None
    label = str(raw.get("type", "")).strip().lower()
    name_raw = raw.get("name")
    name = name_raw.strip() if isinstance(name_raw, str) and name_raw.strip() else None

    entry = get_entry("locations", label)
    if entry is None:
        classified = classify(label, "locations") or classify(name, "locations")
        entry = get_entry("locations", classified.subcategory) if classified else None
    if entry is None:
        uncertain.append(f"unclassified location: {name or label}")
        return None
    return LocationMention(type=entry.subcategory, name=name, icon=entry.icon)

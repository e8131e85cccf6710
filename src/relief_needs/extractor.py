"""Turn one incident description into an ExtractionResult."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List

from .config import ExtractionConfig
from .escalation import EscalationPolicy
from .matcher import (
    clean_text,
    scan_local_terms,
    scan_locations,
    scan_quantities,
    scan_supplies,
    scan_urgency,
    scan_vulnerable_groups,
)
from .models import (
    ExtractionResult,
    IncidentRecord,
    LocationMention,
    SupplyMention,
    Urgency,
    VulnerableGroupMention,
    utc_now_iso,
)

_log = logging.getLogger(__name__)

URGENCY_BONUS = {"critical": 0.15, "high": 0.10, "medium": 0.05, "none": 0.0}
_CATEGORY_SATURATION = 4


def compute_confidence(
    supplies: List[SupplyMention],
    locations: List[LocationMention],
    groups: List[VulnerableGroupMention],
    urgency: Urgency,
) -> float:
    """Score extraction reliability in [0, 1].

    Monotonic in distinct category hits, the share of supply/group mentions
    with a resolved number, and urgency. Text with no taxonomy hits stays
    below 0.3.
    """
    if not (supplies or locations or groups):
        return 0.1 if urgency != "none" else 0.0

    categories = (
        {("supplies", s.category) for s in supplies}
        | {("locations", loc.type) for loc in locations}
        | {("vulnerable_groups", g.group) for g in groups}
    )
    countable = [s.quantity for s in supplies] + [g.count for g in groups]
    resolved = sum(1 for value in countable if value is not None)
    resolved_share = resolved / len(countable) if countable else 0.0

    score = (
        0.05
        + 0.45 * min(len(categories), _CATEGORY_SATURATION) / _CATEGORY_SATURATION
        + 0.35 * resolved_share
        + URGENCY_BONUS.get(urgency, 0.0)
    )
    return round(min(max(score, 0.0), 1.0), 2)


def apply_review_flags(result: ExtractionResult, config: ExtractionConfig) -> ExtractionResult:
    needs_review = result.confidence < config.review_threshold or bool(result.uncertain_items)
    auto_approved = not needs_review and result.confidence >= config.auto_approve_threshold
    return result.model_copy(update={"needs_review": needs_review, "auto_approved": auto_approved})


def extract_with_keywords(text: str, *, incident_id: str = "") -> ExtractionResult:
    cleaned = clean_text(text)
    supplies = scan_supplies(cleaned)
    locations = scan_locations(cleaned)
    groups = scan_vulnerable_groups(cleaned)
    urgency = scan_urgency(cleaned)
    return ExtractionResult(
        incident_id=incident_id,
        original_text=text,
        supplies=supplies,
        locations=locations,
        vulnerable_groups=groups,
        quantities=scan_quantities(cleaned),
        urgency=urgency,
        confidence=compute_confidence(supplies, locations, groups, urgency),
        uncertain_items=[f"unmapped local term: {term}" for term in scan_local_terms(cleaned)],
        extraction_method="keyword",
    )


def extract(
    text: str | None,
    *,
    incident_id: str = "",
    use_llm: bool | None = None,
    config: ExtractionConfig | None = None,
    escalation: EscalationPolicy | None = None,
) -> ExtractionResult | None:
    """Extract supplies, locations and vulnerable groups from *text*.

    Returns ``None`` for missing or blank text. The LLM path only runs when
    an escalation policy with a configured classifier is supplied and the
    keyword confidence falls under ``llm_threshold``.
    """
    if text is None or not text.strip():
        return None
    cfg = config or (escalation.config if escalation is not None else ExtractionConfig())

    result = extract_with_keywords(text, incident_id=incident_id)
    if escalation is not None and escalation.should_escalate(result.confidence, use_llm):
        escalated = escalation.escalate(clean_text(text), result)
        result = escalated.model_copy(
            update={"incident_id": incident_id, "original_text": text, "timestamp": utc_now_iso()}
        )
    return apply_review_flags(result, cfg)


def extract_incidents(
    incidents: Iterable[IncidentRecord | dict],
    *,
    use_llm: bool | None = None,
    config: ExtractionConfig | None = None,
    escalation: EscalationPolicy | None = None,
    max_workers: int = 1,
) -> List[ExtractionResult]:
    """Extract every incident with a non-empty description, preserving order."""
    records = [i if isinstance(i, IncidentRecord) else IncidentRecord.model_validate(i) for i in incidents]
    records = [r for r in records if r.description and r.description.strip()]

    def _run(record: IncidentRecord) -> ExtractionResult | None:
        return extract(
            record.description,
            incident_id=record.id,
            use_llm=use_llm,
            config=config,
            escalation=escalation,
        )

    if max_workers > 1 and len(records) > 1:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="extract") as pool:
            results = list(pool.map(_run, records))
    else:
        results = [_run(r) for r in records]

    extracted = [r for r in results if r is not None]
    _log.info(
        "Extracted %d incidents (%d need review)",
        len(extracted),
        sum(1 for r in extracted if r.needs_review),
    )
    return extracted

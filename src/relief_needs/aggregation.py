"""Cross-incident roll-ups recomputed wholesale from extraction results."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

from .models import (
    AggregatedSupplyNeed,
    AggregatedVulnerableGroup,
    ExtractionResult,
    LocationCategorySummary,
    NamedLocationCount,
    ReviewItem,
)
from .taxonomy import PRIORITY_LEVELS, get_entry, higher_priority

SORT_KEYS = {"priority", "quantity", "incidents"}


def _norm(value: str | None) -> str:
    return " ".join((value or "").casefold().split())


def supply_key(category: str, item: str) -> str:
    return f"{_norm(category)}-{_norm(item)}"


def _incident_ref(result: ExtractionResult, position: int) -> str:
    # Results without an incident id still count as separate incidents.
    return result.incident_id or f"#{position}"


def _by_priority(items: list) -> list:
    return sorted(items, key=lambda x: -PRIORITY_LEVELS.get(x.priority, 0))


def aggregate_supply_needs(
    results: Iterable[ExtractionResult],
    *,
    fulfillment: Mapping[str, str] | None = None,
) -> List[AggregatedSupplyNeed]:
    statuses = fulfillment or {}
    groups: Dict[str, dict] = {}
    for position, result in enumerate(results):
        incident = _incident_ref(result, position)
        for supply in result.supplies:
            key = supply_key(supply.category, supply.item)
            group = groups.get(key)
            if group is None:
                entry = get_entry("supplies", supply.category)
                group = groups[key] = {
                    "key": key,
                    "item": supply.item,
                    "category": supply.category,
                    "total_quantity": 0,
                    "unit": None,
                    "priority": supply.priority,
                    "incidents": [],
                    "icon": entry.icon if entry else supply.icon,
                }
            group["total_quantity"] += supply.quantity or 0
            if group["unit"] is None and supply.unit:
                group["unit"] = supply.unit
            group["priority"] = higher_priority(group["priority"], supply.priority)
            if incident not in group["incidents"]:
                group["incidents"].append(incident)

    needs = [
        AggregatedSupplyNeed(
            **group,
            incident_count=len(group["incidents"]),
            fulfillment_status=statuses.get(group["key"], "pending"),
        )
        for group in groups.values()
    ]
    return _by_priority(needs)


def aggregate_vulnerable_groups(results: Iterable[ExtractionResult]) -> List[AggregatedVulnerableGroup]:
    groups: Dict[str, dict] = {}
    for position, result in enumerate(results):
        incident = _incident_ref(result, position)
        for mention in result.vulnerable_groups:
            group = groups.get(mention.group)
            if group is None:
                entry = get_entry("vulnerable_groups", mention.group)
                group = groups[mention.group] = {
                    "group": mention.group,
                    "total_count": 0,
                    "incidents": [],
                    "priority": entry.priority if entry else mention.priority,
                    "icon": entry.icon if entry else mention.icon,
                    "special_needs": [],
                }
            group["total_count"] += mention.count or 0
            if incident not in group["incidents"]:
                group["incidents"].append(incident)
            if mention.special_needs and mention.special_needs not in group["special_needs"]:
                group["special_needs"].append(mention.special_needs)

    summaries = [
        AggregatedVulnerableGroup(
            group=g["group"],
            total_count=g["total_count"],
            incident_count=len(g["incidents"]),
            priority=g["priority"],
            icon=g["icon"],
            special_needs=g["special_needs"],
        )
        for g in groups.values()
    ]
    return _by_priority(summaries)


def aggregate_by_location(results: Iterable[ExtractionResult]) -> Dict[str, LocationCategorySummary]:
    types: Dict[str, dict] = {}
    for position, result in enumerate(results):
        incident = _incident_ref(result, position)
        for location in result.locations:
            bucket = types.get(location.type)
            if bucket is None:
                entry = get_entry("locations", location.type)
                bucket = types[location.type] = {
                    "icon": entry.icon if entry else location.icon,
                    "incidents": set(),
                    "names": {},
                }
            bucket["incidents"].add(incident)
            if not location.name:
                continue
            named = bucket["names"].setdefault(_norm(location.name), {"name": location.name, "incidents": set()})
            named["incidents"].add(incident)

    summary: Dict[str, LocationCategorySummary] = {}
    for location_type, bucket in types.items():
        # sorted() is stable, so equal counts keep first-seen order.
        named = sorted(bucket["names"].values(), key=lambda n: -len(n["incidents"]))
        summary[location_type] = LocationCategorySummary(
            type=location_type,
            icon=bucket["icon"],
            total_incidents=len(bucket["incidents"]),
            locations=[NamedLocationCount(name=n["name"], incident_count=len(n["incidents"])) for n in named],
        )
    return summary


def filter_supply_needs(
    needs: Iterable[AggregatedSupplyNeed],
    *,
    category: str | None = None,
    priority: str | None = None,
    search: str | None = None,
) -> List[AggregatedSupplyNeed]:
    term = _norm(search)
    result = []
    for need in needs:
        if category and category != "all" and need.category != category:
            continue
        if priority and priority != "all" and need.priority != priority:
            continue
        if term and term not in _norm(need.item) and term not in _norm(need.category):
            continue
        result.append(need)
    return result


def sort_supply_needs(
    needs: Iterable[AggregatedSupplyNeed],
    *,
    by: str = "priority",
    descending: bool = True,
) -> List[AggregatedSupplyNeed]:
    if by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key {by!r}; expected one of {', '.join(sorted(SORT_KEYS))}")
    if by == "priority":
        key = lambda n: PRIORITY_LEVELS.get(n.priority, 0)  # noqa: E731
    elif by == "quantity":
        key = lambda n: n.total_quantity  # noqa: E731
    else:
        key = lambda n: n.incident_count  # noqa: E731
    return sorted(needs, key=key, reverse=descending)


def build_extraction_stats(
    results: Iterable[ExtractionResult],
    review_items: Iterable[ReviewItem] = (),
) -> dict:
    results = list(results)
    items = list(review_items)
    supplies = [s for r in results for s in r.supplies]
    groups = [g for r in results for g in r.vulnerable_groups]

    by_category: Dict[str, int] = {}
    by_priority: Dict[str, int] = {}
    for supply in supplies:
        by_category[supply.category] = by_category.get(supply.category, 0) + 1
        by_priority[supply.priority] = by_priority.get(supply.priority, 0) + 1

    return {
        "extractions": len(results),
        "llm_extractions": sum(1 for r in results if r.extraction_method == "llm"),
        "needs_review": sum(1 for r in results if r.needs_review),
        "auto_approved": sum(1 for r in results if r.auto_approved),
        "total_supplies": len(supplies),
        "total_locations": sum(len(r.locations) for r in results),
        "total_vulnerable_groups": len(groups),
        "total_vulnerable_count": sum(g.count or 0 for g in groups),
        "pending_reviews": sum(1 for i in items if i.status == "pending"),
        "approved_reviews": sum(1 for i in items if i.status == "approved"),
        "corrected_reviews": sum(1 for i in items if i.status == "corrected"),
        "rejected_reviews": sum(1 for i in items if i.status == "rejected"),
        "supplies_by_category": by_category,
        "supplies_by_priority": by_priority,
    }

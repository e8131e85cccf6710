"""Supply-table CSV export and the combined needs report contract."""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterable, Mapping

from .aggregation import (
    aggregate_by_location,
    aggregate_supply_needs,
    aggregate_vulnerable_groups,
    build_extraction_stats,
)
from .models import AggregatedSupplyNeed, ExtractionResult, ReviewItem, utc_now_iso

CSV_HEADER = ["item", "category", "quantity", "unit", "priority", "incidentCount"]


def render_supply_csv(needs: Iterable[AggregatedSupplyNeed]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for need in needs:
        writer.writerow(
            [
                need.item,
                need.category,
                need.total_quantity,
                need.unit or "units",
                need.priority,
                need.incident_count,
            ]
        )
    return buffer.getvalue()


def export_supply_csv(needs: Iterable[AggregatedSupplyNeed], path: Path | None = None) -> str:
    """Render the supply table as CSV, writing it to *path* when given."""
    content = render_supply_csv(needs)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return content


def build_needs_report(
    results: Iterable[ExtractionResult],
    *,
    fulfillment: Mapping[str, str] | None = None,
    review_items: Iterable[ReviewItem] = (),
    review_counts: Mapping[str, int] | None = None,
) -> dict:
    results = list(results)
    items = list(review_items)
    return {
        "generatedAt": utc_now_iso(),
        "supplyNeeds": [n.to_json_dict() for n in aggregate_supply_needs(results, fulfillment=fulfillment)],
        "vulnerableGroups": [g.to_json_dict() for g in aggregate_vulnerable_groups(results)],
        "locations": {k: v.to_json_dict() for k, v in aggregate_by_location(results).items()},
        "reviewCounts": dict(review_counts or {}),
        "stats": build_extraction_stats(results, items),
    }

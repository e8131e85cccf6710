import csv
import io
from pathlib import Path

from relief_needs.aggregation import aggregate_supply_needs
from relief_needs.extractor import extract_incidents
from relief_needs.reporting import CSV_HEADER, build_needs_report, export_supply_csv

INCIDENTS = [
    {"id": "a", "description": "Need 150 food packets and 200 water bottles for 120 children"},
    {"id": "b", "description": "URGENT: 20 tents needed at St. Mary's Church, 3 elderly"},
    {"id": "c", "description": "Need tents"},
]


def test_export_csv_header_and_rows(tmp_path: Path) -> None:
    needs = aggregate_supply_needs(extract_incidents(INCIDENTS))
    out = tmp_path / "exports" / "needs.csv"

    content = export_supply_csv(needs, out)

    assert out.read_text(encoding="utf-8") == content
    rows = list(csv.reader(io.StringIO(content)))
    assert rows[0] == CSV_HEADER == ["item", "category", "quantity", "unit", "priority", "incidentCount"]
    by_item = {row[0]: row for row in rows[1:]}
    assert by_item["tents"] == ["tents", "shelter", "20", "units", "high", "2"]
    assert by_item["food packets"][2:4] == ["150", "packs"]


def test_export_csv_defaults_unit() -> None:
    needs = aggregate_supply_needs(extract_incidents([{"id": "x", "description": "Need tents"}]))
    rows = list(csv.reader(io.StringIO(export_supply_csv(needs))))
    assert rows[1] == ["tents", "shelter", "0", "units", "high", "1"]


def test_build_needs_report_contract() -> None:
    results = extract_incidents(INCIDENTS)

    report = build_needs_report(
        results,
        fulfillment={"shelter-tents": "delivered"},
        review_counts={"pending": 1},
    )

    assert set(report) == {"generatedAt", "supplyNeeds", "vulnerableGroups", "locations", "reviewCounts", "stats"}
    tents = next(n for n in report["supplyNeeds"] if n["item"] == "tents")
    assert tents["fulfillmentStatus"] == "delivered"
    assert tents["incidentCount"] == 2
    assert report["locations"]["religious"]["locations"][0]["name"] == "St. Mary's Church"
    assert {g["group"] for g in report["vulnerableGroups"]} == {"children", "elderly"}
    assert report["stats"]["extractions"] == 3
    assert report["reviewCounts"] == {"pending": 1}

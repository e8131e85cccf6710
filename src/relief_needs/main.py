"""CLI entrypoint for extraction, review decisions, fulfillment and export."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from pydantic import ValidationError

from .aggregation import aggregate_supply_needs
from .config import ExtractionConfig, load_extraction_config
from .errors import ReliefNeedsError
from .escalation import EscalationPolicy
from .extractor import extract, extract_incidents
from .feature_flags import get_feature_flag
from .fulfillment import FulfillmentTracker
from .llm_extraction import ProviderClassifier
from .models import ExtractionResult
from .reporting import build_needs_report, export_supply_csv
from .review import ReviewWorkflow
from .settings import default_db_path, load_environment
from .store import BackgroundWriter, SQLModelStore

_log = logging.getLogger(__name__)


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _load_config(args: argparse.Namespace) -> ExtractionConfig:
    config = load_extraction_config(args.config)
    if args.use_llm:
        config = config.model_copy(update={"use_llm": True})
    return config


def _build_escalation(config: ExtractionConfig) -> EscalationPolicy | None:
    if not config.use_llm:
        return None
    try:
        classifier = ProviderClassifier(timeout=config.llm_timeout_seconds)
    except ValueError as exc:
        _log.warning("LLM escalation disabled: %s", exc)
        return None
    return EscalationPolicy(classifier, config=config)


def _read_incidents(path: Path) -> list:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("incidents", [])
    if not isinstance(payload, list):
        raise ValueError(f"{path} must hold a list of incidents")
    return payload


def _extract_file(args: argparse.Namespace, config: ExtractionConfig) -> List[ExtractionResult]:
    escalation = _build_escalation(config)
    try:
        return extract_incidents(
            _read_incidents(args.input),
            config=config,
            escalation=escalation,
            max_workers=args.workers,
        )
    finally:
        if escalation is not None:
            escalation.close()


def _open_review(db_path: Path, config: ExtractionConfig, writer: BackgroundWriter) -> ReviewWorkflow:
    return ReviewWorkflow(
        SQLModelStore(db_path, collection="reviews"),
        config=config,
        writer=writer,
        corrections_store=SQLModelStore(db_path, collection="corrections"),
    )


def _open_fulfillment(db_path: Path, writer: BackgroundWriter) -> FulfillmentTracker:
    return FulfillmentTracker(SQLModelStore(db_path, collection="fulfillment"), writer=writer)


def cmd_extract(args: argparse.Namespace) -> int:
    config = _load_config(args)
    text = args.text if args.text is not None else sys.stdin.read()
    escalation = _build_escalation(config)
    try:
        result = extract(text, incident_id=args.incident_id, config=config, escalation=escalation)
    finally:
        if escalation is not None:
            escalation.close()
    if result is None:
        print("Nothing to extract: description is empty")
        return 1
    _print_json(result.to_json_dict())
    return 0


def cmd_process(args: argparse.Namespace) -> int:
    config = _load_config(args)
    results = _extract_file(args, config)
    writer = BackgroundWriter()
    try:
        review = _open_review(args.db, config, writer)
        fulfillment = _open_fulfillment(args.db, writer)
        if get_feature_flag("auto_enqueue_reviews", True):
            created = review.build_queue(results)
            _log.info("Queued %d new review items", len(created))
        report = build_needs_report(
            results,
            fulfillment=fulfillment.statuses(),
            review_items=review.list_items("all"),
            review_counts=review.counts(),
        )
    finally:
        writer.close()
    if args.include_results:
        report["extractions"] = [r.to_json_dict() for r in results]
    _print_json(report)
    return 0


def cmd_review_queue(args: argparse.Namespace) -> int:
    writer = BackgroundWriter()
    try:
        review = _open_review(args.db, ExtractionConfig(), writer)
        items = review.list_items(args.status)
    except ValidationError as exc:
        print(f"Invalid status filter: {exc.errors()[0]['msg']}")
        return 2
    finally:
        writer.close()
    _print_json({"counts": review.counts(), "items": [i.to_json_dict() for i in items]})
    return 0


def cmd_review_decide(args: argparse.Namespace) -> int:
    corrected = json.loads(args.corrected_data) if args.corrected_data else None
    writer = BackgroundWriter()
    try:
        review = _open_review(args.db, ExtractionConfig(), writer)
        item = review.decide(
            args.item_id,
            args.status,
            reviewed_by=args.reviewed_by,
            admin_notes=args.notes,
            corrected_data=corrected,
        )
    except ValidationError as exc:
        print(f"Invalid decision: {exc.errors()[0]['msg']}")
        return 2
    except ReliefNeedsError as exc:
        print(str(exc))
        return 1
    finally:
        writer.close()
    _print_json(item.to_json_dict())
    return 0


def cmd_mark_delivered(args: argparse.Namespace) -> int:
    writer = BackgroundWriter()
    try:
        record = _open_fulfillment(args.db, writer).mark_delivered(args.key)
    finally:
        writer.close()
    _print_json(record.to_json_dict())
    return 0


def cmd_export_csv(args: argparse.Namespace) -> int:
    config = _load_config(args)
    results = _extract_file(args, config)
    writer = BackgroundWriter()
    try:
        statuses = _open_fulfillment(args.db, writer).statuses()
    finally:
        writer.close()
    needs = aggregate_supply_needs(results, fulfillment=statuses)
    content = export_supply_csv(needs, args.output)
    if args.output is None:
        sys.stdout.write(content)
    else:
        _print_json({"path": str(args.output), "rows": len(needs)})
    return 0


def _add_extraction_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, default=None, help="JSON file overriding extraction thresholds")
    parser.add_argument("--use-llm", action="store_true", help="Escalate low-confidence extractions to an LLM")


def _add_db_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--db", type=Path, default=default_db_path(), help="SQLite file for decisions")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="relief-needs")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser("extract", help="Extract needs from one description")
    extract_parser.add_argument("--text", default=None, help="Description text (stdin when omitted)")
    extract_parser.add_argument("--incident-id", default="")
    _add_extraction_args(extract_parser)
    extract_parser.set_defaults(func=cmd_extract)

    process_parser = subparsers.add_parser(
        "process", help="Extract a JSON file of incidents, queue reviews and print the needs report"
    )
    process_parser.add_argument("--input", type=Path, required=True)
    process_parser.add_argument("--workers", type=int, default=1)
    process_parser.add_argument("--include-results", action="store_true")
    _add_extraction_args(process_parser)
    _add_db_arg(process_parser)
    process_parser.set_defaults(func=cmd_process)

    queue_parser = subparsers.add_parser("review-queue", help="List review items")
    queue_parser.add_argument("--status", default="pending", help="pending|approved|corrected|rejected|all")
    _add_db_arg(queue_parser)
    queue_parser.set_defaults(func=cmd_review_queue)

    decide_parser = subparsers.add_parser("review-decide", help="Approve, correct or reject a review item")
    decide_parser.add_argument("item_id")
    decide_parser.add_argument("--status", required=True)
    decide_parser.add_argument("--reviewed-by", required=True)
    decide_parser.add_argument("--notes", default=None)
    decide_parser.add_argument("--corrected-data", default=None, help="JSON object with corrected extraction")
    _add_db_arg(decide_parser)
    decide_parser.set_defaults(func=cmd_review_decide)

    delivered_parser = subparsers.add_parser("mark-delivered", help="Mark a supply need delivered")
    delivered_parser.add_argument("key", help="category-item key, e.g. food-rice")
    _add_db_arg(delivered_parser)
    delivered_parser.set_defaults(func=cmd_mark_delivered)

    csv_parser = subparsers.add_parser("export-csv", help="Export the aggregated supply table as CSV")
    csv_parser.add_argument("--input", type=Path, required=True)
    csv_parser.add_argument("--output", type=Path, default=None)
    csv_parser.add_argument("--workers", type=int, default=1)
    _add_extraction_args(csv_parser)
    _add_db_arg(csv_parser)
    csv_parser.set_defaults(func=cmd_export_csv)

    return parser


def main(argv: List[str] | None = None) -> int:
    load_environment()
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())

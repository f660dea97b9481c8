from __future__ import annotations

import argparse
import json
import sys
from typing import Optional, Sequence

from catalog_reconciler.adapters.audit.csv_audit_sink import CsvAuditSink
from catalog_reconciler.adapters.browser.playwright_session import PlaywrightSessionProvider
from catalog_reconciler.adapters.config.json_rules_provider import JsonRulesProvider
from catalog_reconciler.application.reapply import RuleReapplicationEngine
from catalog_reconciler.application.run_context import ReapplySourceKind, RunContext
from catalog_reconciler.application.runner import Runner
from catalog_reconciler.app.factory import create_adapters, create_reapply_source
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.classification.evaluator import classify
from catalog_reconciler.observability.logging import configure_logging
from catalog_reconciler.settings import get_settings

CLOSE_PROMPT = "Press ENTER to close the browser..."


def _add_run_options(parser: argparse.ArgumentParser, default_limit: int) -> None:
    parser.add_argument("--dry-run", action="store_true", help="Read and classify only; change nothing")
    parser.add_argument("--pause", action="store_true", dest="pause_each", help="Wait for ENTER after each item")
    parser.add_argument("--limit", type=int, default=default_limit, help="Maximum items to process")
    parser.add_argument("--rules", dest="rules_path", help="JSON rule table file")
    parser.add_argument("--correlation-id", dest="correlation_id")


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Catalog reconciler CLI")
    subparsers = parser.add_subparsers(dest="command")

    review_parser = subparsers.add_parser("review", help="Review and approve pending invoice items")
    _add_run_options(review_parser, settings.max_items_per_run)

    reapply_parser = subparsers.add_parser("reapply", help="Re-apply rules to previously approved items")
    _add_run_options(reapply_parser, settings.max_items_per_run)
    reapply_parser.add_argument(
        "--source",
        choices=[kind.value for kind in ReapplySourceKind],
        default=ReapplySourceKind.AUDIT.value,
        help="Where previously approved items come from",
    )
    reapply_parser.add_argument("--path", dest="source_path", help="Audit log or bulk export CSV")

    classify_parser = subparsers.add_parser("classify", help="Classify one item description offline")
    classify_parser.add_argument("--description", required=True)
    classify_parser.add_argument("--vendor", default="")
    classify_parser.add_argument("--rules", dest="rules_path", help="JSON rule table file")
    return parser


def _run_review(args: argparse.Namespace) -> dict:
    session_provider, audit_sink, rules_provider, console, lock_manager = create_adapters(rules_path=args.rules_path)
    ctx = RunContext.from_args(
        limit=args.limit,
        dry_run=args.dry_run,
        pause_each=args.pause_each,
        correlation_id=args.correlation_id,
    )
    runner = Runner(
        session_provider=session_provider,
        audit_sink=audit_sink,
        rules_provider=rules_provider,
        console=console,
        lock_manager=lock_manager,
        settings=get_settings(),
    )
    try:
        return runner.run(ctx)
    finally:
        console.wait_for_enter(CLOSE_PROMPT)
        session_provider.close()


def _run_reapply(args: argparse.Namespace) -> dict:
    settings = get_settings()
    _, _, rules_provider, console, lock_manager = create_adapters(rules_path=args.rules_path, settings=settings)
    ctx = RunContext.from_args(
        limit=args.limit,
        dry_run=args.dry_run,
        pause_each=args.pause_each,
        source=args.source,
        source_path=args.source_path,
        correlation_id=args.correlation_id,
    )
    session_provider = None if ctx.dry_run else PlaywrightSessionProvider(settings)
    engine = RuleReapplicationEngine(
        source=create_reapply_source(ctx.source, ctx.source_path, settings),
        audit_sink=CsvAuditSink.for_reapply(settings),
        config=ClassificationConfig.from_settings(settings, rules_provider.get_tables()),
        settings=settings,
        console=console,
        lock_manager=lock_manager,
        session_provider=session_provider,
    )
    try:
        return engine.run(ctx)
    finally:
        if session_provider is not None:
            console.wait_for_enter(CLOSE_PROMPT)
            session_provider.close()


def _run_classify(args: argparse.Namespace) -> dict:
    settings = get_settings()
    rules_provider = JsonRulesProvider(args.rules_path or settings.rules_path)
    config = ClassificationConfig.from_settings(settings, rules_provider.get_tables())
    result = classify(args.description, args.vendor, config)
    return {
        "description": args.description,
        "vendor": args.vendor,
        "target_category": result.target_category,
        "target_ledger_code": result.target_ledger_code,
        "normalized_product_name": result.normalized_product_name,
        "unit_class": result.unit_class.value,
        "match_reason": result.match_reason,
        "matched_keyword": result.matched_keyword,
        "is_reclassified": result.is_reclassified,
        "notes": list(result.notes),
    }


def main(argv: Optional[Sequence[str]] = None) -> None:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "review":
        summary = _run_review(args)
    elif args.command == "reapply":
        summary = _run_reapply(args)
    elif args.command == "classify":
        summary = _run_classify(args)
    else:
        parser.print_help()
        return

    print(json.dumps(summary, indent=2, default=str))
    if summary.get("fatal"):
        sys.exit(1)


if __name__ == "__main__":
    main()

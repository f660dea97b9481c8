from __future__ import annotations

import json
from pathlib import Path

import pytest

from catalog_reconciler.adapters.audit.csv_audit_sink import CsvAuditSink
from catalog_reconciler.adapters.inputs.audit_log_source import AuditLogSource
from catalog_reconciler.adapters.inputs.bulk_export_source import BulkExportSource
from catalog_reconciler.app import cli
from catalog_reconciler.app.factory import create_reapply_source
from catalog_reconciler.application.errors import SourceNotFoundError
from catalog_reconciler.application.run_context import ReapplySourceKind
from catalog_reconciler.domain.audit.model import AuditRecord, AuditStatus
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.reapplication.planner import plan_corrections


def _printed_json(out: str) -> dict:
    # Log lines may share stdout with the summary
    return json.loads(out[out.index("{\n") :])


def test_classify_command_prints_result(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["classify", "--description", "SAKE 300ML JUNMAI GINJO", "--vendor", "Empire Distributors"])

    result = _printed_json(capsys.readouterr().out)
    assert result["target_category"] == "Liquor"
    assert result["target_ledger_code"] == "Event materials"
    assert result["unit_class"] == "Volume"
    assert result["is_reclassified"] is True


def test_review_options_parse() -> None:
    args = cli.build_parser().parse_args(["review", "--dry-run", "--pause", "--limit", "5"])

    assert args.command == "review"
    assert args.dry_run is True
    assert args.pause_each is True
    assert args.limit == 5


def test_reapply_dry_run_from_export(monkeypatch: pytest.MonkeyPatch, settings, tmp_path: Path, capsys) -> None:
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    export = tmp_path / "export.csv"
    export.write_text(
        "Item Description,Vendor,Category,GL Code\n"
        "BLEACH GERMICIDAL,Sysco,Food Purchases,5000\n"
        "PORK BELLY,Sysco,Food Purchases,5000\n",
        encoding="utf-8",
    )

    cli.main(["reapply", "--dry-run", "--source", "export", "--path", str(export)])

    summary = _printed_json(capsys.readouterr().out)
    assert summary["planned"] == 1
    assert summary["dry_run_previewed"] == 1
    records = CsvAuditSink.for_reapply(settings).read_records()
    assert [r.status for r in records] == [AuditStatus.DRY_RUN]
    assert records[0].category == "Cleaning Supplies"


def test_create_reapply_source(settings, tmp_path: Path) -> None:
    assert isinstance(create_reapply_source(ReapplySourceKind.EXPORT, "items.csv", settings), BulkExportSource)
    assert isinstance(create_reapply_source(ReapplySourceKind.AUDIT, settings=settings), AuditLogSource)

    with pytest.raises(SourceNotFoundError):
        create_reapply_source(ReapplySourceKind.EXPORT, None, settings)


def test_audit_source_feeds_ledger_fixes_outside_default_category(settings, tmp_path: Path) -> None:
    """Approved items already moved out of the default category still get their ledger fix."""
    log = tmp_path / "review-log.csv"
    sink = CsvAuditSink(log)
    sink.append(
        AuditRecord(
            item="NAPKIN DINNER WHITE",
            status=AuditStatus.APPROVED,
            vendor="Sysco",
            category="Non-Food Items",
            ledger_code="5001",
        )
    )
    sink.append(AuditRecord(item="PORK BELLY", status=AuditStatus.APPROVED, vendor="Sysco", category="Food Purchases", ledger_code="5000"))

    source = create_reapply_source(ReapplySourceKind.AUDIT, str(log), settings)
    corrections = plan_corrections(source.fetch_items(), ClassificationConfig())

    assert len(corrections) == 1
    assert corrections[0].item.description == "NAPKIN DINNER WHITE"
    assert corrections[0].target_category is None
    assert corrections[0].target_ledger_code == "5000"
    assert corrections[0].reason == "classification.ledger_fix:non-food items:5001->5000"

"""Contract tests for the audit log row shape shared by review and reapply runs."""

from __future__ import annotations

from datetime import datetime, timezone

from catalog_reconciler.domain.audit.model import (
    ATTENTION_STATUSES,
    AUDIT_COLUMNS,
    AuditRecord,
    AuditStatus,
)


def test_audit_columns_are_fixed() -> None:
    """Downstream spreadsheets depend on this exact column order."""
    assert AUDIT_COLUMNS == (
        "Timestamp",
        "Item",
        "Vendor",
        "Product",
        "Category",
        "Ledger_Code",
        "Unit_Class",
        "Status",
        "Notes",
    )


def test_status_vocabulary() -> None:
    assert {s.value for s in AuditStatus} == {
        "APPROVED",
        "FLAGGED",
        "SKIPPED",
        "DRY_RUN",
        "STUCK",
        "UPDATED",
        "NOT_FOUND",
        "ERROR",
        "CAT_NOT_SET",
    }


def test_attention_statuses() -> None:
    assert ATTENTION_STATUSES == {
        AuditStatus.FLAGGED,
        AuditStatus.STUCK,
        AuditStatus.NOT_FOUND,
        AuditStatus.ERROR,
        AuditStatus.CAT_NOT_SET,
    }
    assert AuditStatus.APPROVED.needs_attention is False
    assert AuditStatus.DRY_RUN.needs_attention is False


def test_row_follows_column_order() -> None:
    record = AuditRecord(
        item="MADAI SASHIMI GRADE *PACK 2CT* 8OZ",
        status=AuditStatus.APPROVED,
        vendor="East Sea Trading",
        product="madai sashimi grade",
        category="Food Purchases",
        ledger_code="5001",
        unit_class="Weight",
        notes="Japanese fish (special ledger code)",
        timestamp=datetime(2024, 1, 10, 9, 30, tzinfo=timezone.utc),
    )

    row = dict(zip(AUDIT_COLUMNS, record.to_row()))

    assert row == {
        "Timestamp": "2024-01-10T09:30:00+00:00",
        "Item": "MADAI SASHIMI GRADE *PACK 2CT* 8OZ",
        "Vendor": "East Sea Trading",
        "Product": "madai sashimi grade",
        "Category": "Food Purchases",
        "Ledger_Code": "5001",
        "Unit_Class": "Weight",
        "Status": "APPROVED",
        "Notes": "Japanese fish (special ledger code)",
    }
    assert AuditRecord.from_row(row) == record


def test_from_row_accepts_zulu_timestamps_and_missing_columns() -> None:
    record = AuditRecord.from_row({"Timestamp": "2024-01-10T09:30:00Z", "Item": "PORK BELLY", "Status": "flagged"})

    assert record.timestamp == datetime(2024, 1, 10, 9, 30, tzinfo=timezone.utc)
    assert record.status == AuditStatus.FLAGGED
    assert record.vendor == ""
    assert record.unit_class == ""

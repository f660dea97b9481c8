"""Pydantic models for audit-log API responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from catalog_reconciler.domain.audit.model import AuditRecord


class AuditRecordItem(BaseModel):
    """One audit log row."""

    timestamp: datetime = Field(..., description="ISO timestamp")
    item: str
    vendor: str = ""
    product: str = ""
    category: str = ""
    ledger_code: str = ""
    unit_class: str = ""
    status: str = Field(..., description="APPROVED/FLAGGED/SKIPPED/DRY_RUN/STUCK/UPDATED/NOT_FOUND/ERROR/CAT_NOT_SET")
    notes: str = ""
    needs_attention: bool = False

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditRecordItem":
        return cls(
            timestamp=record.timestamp,
            item=record.item,
            vendor=record.vendor,
            product=record.product,
            category=record.category,
            ledger_code=record.ledger_code,
            unit_class=record.unit_class,
            status=record.status.value,
            notes=record.notes,
            needs_attention=record.status.needs_attention,
        )


class AuditRecordListResponse(BaseModel):
    """Response for audit record list endpoints."""

    items: list[AuditRecordItem]
    count: int
    status_counts: dict[str, int] = Field(default_factory=dict, description="Counts per status across returned items")

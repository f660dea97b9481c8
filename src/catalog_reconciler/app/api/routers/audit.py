"""Router for audit log and attention worklist endpoints."""

from __future__ import annotations

from collections import Counter

from fastapi import APIRouter, Depends, HTTPException, Query

from catalog_reconciler.app.api.models.audit import AuditRecordItem, AuditRecordListResponse
from catalog_reconciler.app.api.routers.dependencies import get_audit_sink
from catalog_reconciler.domain.audit.model import AuditRecord, AuditStatus
from catalog_reconciler.ports.audit_sink import AuditSink

router = APIRouter()


def _to_response(records: list[AuditRecord]) -> AuditRecordListResponse:
    items = [AuditRecordItem.from_record(r) for r in records]
    return AuditRecordListResponse(
        items=items,
        count=len(items),
        status_counts=dict(Counter(item.status for item in items)),
    )


@router.get("/audit/records", response_model=AuditRecordListResponse)
def list_audit_records(
    status: list[str] | None = Query(None, description="Filter by status (APPROVED/FLAGGED/SKIPPED/...)"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of results, newest first"),
    sink: AuditSink = Depends(get_audit_sink),
) -> AuditRecordListResponse:
    """List audit records, newest first, optionally filtered by status."""
    try:
        wanted = {AuditStatus(s.strip().upper()) for s in status} if status else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Unknown status: {e}")

    records = [r for r in sink.read_records() if wanted is None or r.status in wanted]
    records.reverse()
    return _to_response(records[:limit])


@router.get("/worklists/attention", response_model=AuditRecordListResponse)
def get_attention_worklist(
    limit: int = Query(200, ge=1, le=1000, description="Maximum number of results, newest first"),
    sink: AuditSink = Depends(get_audit_sink),
) -> AuditRecordListResponse:
    """
    Items deferred to a human: flagged, stuck, not found and failed updates.

    An item that appears more than once is listed only with its latest record.
    """
    latest: dict[str, AuditRecord] = {}
    for record in sink.read_records():
        latest[record.item] = record
    records = [r for r in latest.values() if r.status.needs_attention]
    records.sort(key=lambda r: r.timestamp, reverse=True)
    return _to_response(records[:limit])

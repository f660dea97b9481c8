from __future__ import annotations

from typing import Iterable, List

from catalog_reconciler.domain.audit.model import AuditStatus
from catalog_reconciler.domain.reapplication.model import HistoricalItem
from catalog_reconciler.ports.audit_sink import AuditSink
from catalog_reconciler.ports.reapply_source import ReapplySource


class AuditLogSource(ReapplySource):
    """Approved items from a previous review run, read back from its audit sink."""

    def __init__(self, sink: AuditSink) -> None:
        self.sink = sink

    def fetch_items(self) -> Iterable[HistoricalItem]:
        items: List[HistoricalItem] = []
        for record in self.sink.read_records():
            if record.status != AuditStatus.APPROVED:
                continue
            items.append(
                HistoricalItem(
                    description=record.item,
                    vendor=record.vendor,
                    category=record.category,
                    ledger_code=record.ledger_code,
                    status=record.status.value,
                    product=record.product,
                )
            )
        return items

from __future__ import annotations

from typing import Iterable, List

from catalog_reconciler.domain.audit.model import AuditRecord
from catalog_reconciler.ports.audit_sink import AuditSink


class InMemoryAuditSink(AuditSink):
    def __init__(self, records: Iterable[AuditRecord] = ()) -> None:
        self.records: List[AuditRecord] = list(records)

    def append(self, record: AuditRecord) -> None:
        self.records.append(record)

    def read_records(self) -> Iterable[AuditRecord]:
        return list(self.records)


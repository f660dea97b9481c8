from __future__ import annotations

from typing import Iterable, Protocol

from catalog_reconciler.domain.audit.model import AuditRecord


class AuditSink(Protocol):
    """Append-only record of item outcomes."""

    def append(self, record: AuditRecord) -> None: ...

    def read_records(self) -> Iterable[AuditRecord]: ...

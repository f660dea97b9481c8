from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

from catalog_reconciler.domain.audit.model import AUDIT_COLUMNS, AuditRecord
from catalog_reconciler.ports.audit_sink import AuditSink
from catalog_reconciler.settings import Settings

logger = logging.getLogger(__name__)


class CsvAuditSink(AuditSink):
    """
    Appends audit records to a CSV file, one row per record.

    Records whose status needs a human (flagged, stuck, not found, errors)
    are also copied to a separate attention file when one is configured.
    The header is written only when a file is created.
    """

    def __init__(self, audit_path: str | Path, flagged_path: Optional[str | Path] = None) -> None:
        self.audit_path = Path(audit_path)
        self.flagged_path = Path(flagged_path) if flagged_path else None
        self.audit_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def for_review(cls, settings: Settings) -> "CsvAuditSink":
        out = Path(settings.output_dir)
        return cls(out / settings.audit_log_file, out / settings.flagged_log_file)

    @classmethod
    def for_reapply(cls, settings: Settings) -> "CsvAuditSink":
        out = Path(settings.output_dir)
        return cls(out / settings.recat_log_file, out / settings.recat_error_file)

    def _append_row(self, path: Path, record: AuditRecord) -> None:
        is_new = not path.exists() or path.stat().st_size == 0
        with path.open("a", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            if is_new:
                writer.writerow(AUDIT_COLUMNS)
            writer.writerow(record.to_row())

    def append(self, record: AuditRecord) -> None:
        self._append_row(self.audit_path, record)
        if self.flagged_path is not None and record.status.needs_attention:
            self._append_row(self.flagged_path, record)

    def read_records(self) -> Iterable[AuditRecord]:
        return list(self._iter_records(self.audit_path))

    def _iter_records(self, path: Path) -> Iterator[AuditRecord]:
        if not path.exists():
            return
        with path.open(newline="", encoding="utf-8") as f:
            for line_no, row in enumerate(csv.DictReader(f), start=2):
                try:
                    yield AuditRecord.from_row(row)
                except ValueError as e:
                    logger.warning(f"Skipping unreadable audit row {path.name}:{line_no}: {e}")

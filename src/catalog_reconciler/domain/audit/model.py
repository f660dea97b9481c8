from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping

AUDIT_COLUMNS = (
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


class AuditStatus(str, Enum):
    APPROVED = "APPROVED"
    FLAGGED = "FLAGGED"
    SKIPPED = "SKIPPED"
    DRY_RUN = "DRY_RUN"
    STUCK = "STUCK"
    UPDATED = "UPDATED"
    NOT_FOUND = "NOT_FOUND"
    ERROR = "ERROR"
    CAT_NOT_SET = "CAT_NOT_SET"

    @property
    def needs_attention(self) -> bool:
        """Statuses deferred to a human."""
        return self in ATTENTION_STATUSES


ATTENTION_STATUSES = frozenset(
    {
        AuditStatus.FLAGGED,
        AuditStatus.STUCK,
        AuditStatus.NOT_FOUND,
        AuditStatus.ERROR,
        AuditStatus.CAT_NOT_SET,
    }
)


@dataclass(frozen=True)
class AuditRecord:
    item: str
    status: AuditStatus
    vendor: str = ""
    product: str = ""
    category: str = ""
    ledger_code: str = ""
    unit_class: str = ""
    notes: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_row(self) -> list[str]:
        return [
            self.timestamp.isoformat(),
            self.item,
            self.vendor,
            self.product,
            self.category,
            self.ledger_code,
            self.unit_class,
            self.status.value,
            self.notes,
        ]

    @classmethod
    def from_row(cls, row: Mapping[str, str]) -> "AuditRecord":
        raw_ts = (row.get("Timestamp") or "").strip()
        try:
            timestamp = datetime.fromisoformat(raw_ts.replace("Z", "+00:00"))
        except ValueError:
            timestamp = datetime.now(timezone.utc)
        return cls(
            item=row.get("Item") or "",
            status=AuditStatus((row.get("Status") or "").strip().upper()),
            vendor=row.get("Vendor") or "",
            product=row.get("Product") or "",
            category=row.get("Category") or "",
            ledger_code=row.get("Ledger_Code") or "",
            unit_class=row.get("Unit_Class") or "",
            notes=row.get("Notes") or "",
            timestamp=timestamp,
        )

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

APPROVED_STATUS = "approved"


@dataclass(frozen=True)
class HistoricalItem:
    """An item as recorded in the audit log or a bulk export."""

    description: str
    vendor: str = ""
    category: str = ""
    ledger_code: str = ""
    status: str = ""
    product: str = ""

    @property
    def is_approved(self) -> bool:
        return self.status.strip().lower() == APPROVED_STATUS


@dataclass(frozen=True)
class Correction:
    item: HistoricalItem
    target_category: Optional[str]
    target_ledger_code: Optional[str]
    reason: str
    matched_keyword: Optional[str] = None

    @property
    def effective_category(self) -> str:
        return self.target_category or self.item.category

    @property
    def effective_ledger_code(self) -> str:
        return self.target_ledger_code or self.item.ledger_code

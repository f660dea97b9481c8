from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from catalog_reconciler.domain.classification.model import RuleTables
from catalog_reconciler.domain.classification.rules import DEFAULT_TABLES
from catalog_reconciler.settings import Settings


@dataclass(frozen=True)
class ClassificationConfig:
    default_category: str = "Food Purchases"
    excluded_category: str = "Non-Food Items"
    default_ledger_code: str = "5000"
    special_ledger_code: str = "5001"
    tables: RuleTables = field(default_factory=lambda: DEFAULT_TABLES)

    @classmethod
    def from_settings(cls, settings: Settings, tables: Optional[RuleTables] = None) -> "ClassificationConfig":
        return cls(
            default_category=settings.default_category,
            excluded_category=settings.excluded_category,
            default_ledger_code=settings.default_ledger_code,
            special_ledger_code=settings.special_ledger_code,
            tables=tables or DEFAULT_TABLES,
        )

from __future__ import annotations

from typing import Protocol

from catalog_reconciler.domain.classification.model import RuleTables


class RulesProvider(Protocol):
    def get_tables(self) -> RuleTables: ...

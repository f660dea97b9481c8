from __future__ import annotations

from typing import Iterable, Protocol

from catalog_reconciler.domain.reapplication.model import HistoricalItem


class ReapplySource(Protocol):
    def fetch_items(self) -> Iterable[HistoricalItem]: ...

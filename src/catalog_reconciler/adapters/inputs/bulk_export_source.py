from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from catalog_reconciler.application.errors import SourceNotFoundError
from catalog_reconciler.domain.reapplication.model import HistoricalItem
from catalog_reconciler.ports.reapply_source import ReapplySource

logger = logging.getLogger(__name__)

# Export column names vary between report versions
HEADER_ALIASES: Dict[str, tuple[str, ...]] = {
    "description": ("item description", "description", "item", "item name"),
    "vendor": ("vendor", "vendor name", "supplier"),
    "category": ("category", "accounting category", "item category"),
    "ledger_code": ("gl code", "gl_code", "ledger code", "ledger_code", "gl account"),
    "status": ("status", "review status", "approval status"),
    "product": ("product", "product name"),
}


def _normalize(header: str) -> str:
    return " ".join((header or "").replace("\ufeff", "").strip().lower().split())


def resolve_columns(fieldnames: Iterable[str]) -> Dict[str, str]:
    """Map each known field to the first export header that matches one of its aliases."""
    by_normalized = {_normalize(name): name for name in fieldnames if name}
    resolved: Dict[str, str] = {}
    for field_name, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            if alias in by_normalized:
                resolved[field_name] = by_normalized[alias]
                break
    return resolved


def _cell(row: Mapping[str, Optional[str]], columns: Mapping[str, str], name: str) -> str:
    column = columns.get(name)
    if column is None:
        return ""
    return (row.get(column) or "").strip()


class BulkExportSource(ReapplySource):
    """Items from a CSV bulk export of the item library."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def fetch_items(self) -> Iterable[HistoricalItem]:
        if not self.path.exists():
            raise SourceNotFoundError(f"Export file not found: {self.path}")

        items: List[HistoricalItem] = []
        with self.path.open(newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            columns = resolve_columns(reader.fieldnames or [])
            if "description" not in columns:
                raise SourceNotFoundError(f"No item description column in {self.path}")
            for row in reader:
                description = _cell(row, columns, "description")
                if not description:
                    continue
                items.append(
                    HistoricalItem(
                        description=description,
                        vendor=_cell(row, columns, "vendor"),
                        category=_cell(row, columns, "category"),
                        ledger_code=_cell(row, columns, "ledger_code"),
                        # An export without a status column lists library items, which are approved
                        status=_cell(row, columns, "status") or "Approved",
                        product=_cell(row, columns, "product"),
                    )
                )
        logger.info(f"Read {len(items)} items from {self.path}")
        return items

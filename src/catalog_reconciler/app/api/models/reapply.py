"""Pydantic models for rule reapplication previews."""

from __future__ import annotations

from pydantic import BaseModel, Field

from catalog_reconciler.domain.reapplication.model import Correction


class CorrectionItem(BaseModel):
    description: str
    vendor: str = ""
    current_category: str = ""
    current_ledger_code: str = ""
    target_category: str | None = None
    target_ledger_code: str | None = None
    reason: str
    matched_keyword: str | None = None

    @classmethod
    def from_correction(cls, correction: Correction) -> "CorrectionItem":
        item = correction.item
        return cls(
            description=item.description,
            vendor=item.vendor,
            current_category=item.category,
            current_ledger_code=item.ledger_code,
            target_category=correction.target_category,
            target_ledger_code=correction.target_ledger_code,
            reason=correction.reason,
            matched_keyword=correction.matched_keyword,
        )


class ReapplyPlanResponse(BaseModel):
    source: str = Field(..., description="audit/export")
    items: list[CorrectionItem]
    count: int
    by_category: dict[str, int] = Field(default_factory=dict, description="Planned corrections per target category")

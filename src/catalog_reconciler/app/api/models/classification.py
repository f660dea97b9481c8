"""Pydantic models for the offline classification endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ClassifyRequest(BaseModel):
    description: str = Field(..., min_length=1, description="Invoice item description")
    vendor: str = ""


class ClassificationResponse(BaseModel):
    target_category: str
    target_ledger_code: str | None = None
    normalized_product_name: str
    unit_class: str = Field(..., description="Volume/Each/Weight")
    match_reason: str
    matched_keyword: str | None = None
    is_reclassified: bool
    special_vendor_flag: bool
    excluded_flag: bool
    notes: list[str] = Field(default_factory=list)

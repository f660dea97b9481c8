"""Pydantic models for API responses."""

from catalog_reconciler.app.api.models.audit import AuditRecordItem, AuditRecordListResponse
from catalog_reconciler.app.api.models.classification import ClassificationResponse, ClassifyRequest
from catalog_reconciler.app.api.models.reapply import CorrectionItem, ReapplyPlanResponse

__all__ = [
    "AuditRecordItem",
    "AuditRecordListResponse",
    "ClassificationResponse",
    "ClassifyRequest",
    "CorrectionItem",
    "ReapplyPlanResponse",
]

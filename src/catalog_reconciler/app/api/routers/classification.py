"""Router for offline classification."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from catalog_reconciler.app.api.models.classification import ClassificationResponse, ClassifyRequest
from catalog_reconciler.app.api.routers.dependencies import get_classification_config
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.classification.evaluator import classify

router = APIRouter()


@router.post("/classify", response_model=ClassificationResponse)
def classify_item(
    req: ClassifyRequest,
    config: ClassificationConfig = Depends(get_classification_config),
) -> ClassificationResponse:
    result = classify(req.description, req.vendor, config)
    return ClassificationResponse(
        target_category=result.target_category,
        target_ledger_code=result.target_ledger_code,
        normalized_product_name=result.normalized_product_name,
        unit_class=result.unit_class.value,
        match_reason=result.match_reason,
        matched_keyword=result.matched_keyword,
        is_reclassified=result.is_reclassified,
        special_vendor_flag=result.special_vendor_flag,
        excluded_flag=result.excluded_flag,
        notes=list(result.notes),
    )

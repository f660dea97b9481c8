"""Router for rule reapplication previews. Never opens a browser."""

from __future__ import annotations

from collections import Counter
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Query

from catalog_reconciler.app.api.models.reapply import CorrectionItem, ReapplyPlanResponse
from catalog_reconciler.app.api.routers.dependencies import get_classification_config
from catalog_reconciler.app.factory import create_reapply_source
from catalog_reconciler.application.errors import SourceNotFoundError
from catalog_reconciler.application.run_context import ReapplySourceKind
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.reapplication.planner import plan_corrections
from catalog_reconciler.ports.reapply_source import ReapplySource

router = APIRouter()

SourceFactory = Callable[..., ReapplySource]


def get_source_factory() -> SourceFactory:
    """Dependency to provide the reapply source factory."""
    return lambda kind, path: create_reapply_source(kind, path)


@router.get("/reapply/plan", response_model=ReapplyPlanResponse)
def get_reapply_plan(
    source: ReapplySourceKind = Query(ReapplySourceKind.AUDIT, description="audit/export"),
    path: str | None = Query(None, description="Audit log or bulk export CSV path"),
    config: ClassificationConfig = Depends(get_classification_config),
    source_factory: SourceFactory = Depends(get_source_factory),
) -> ReapplyPlanResponse:
    """Preview the corrections a reapply run would make."""
    try:
        items = source_factory(source, path).fetch_items()
    except SourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    corrections = plan_corrections(items, config)
    return ReapplyPlanResponse(
        source=source.value,
        items=[CorrectionItem.from_correction(c) for c in corrections],
        count=len(corrections),
        by_category=dict(Counter(c.effective_category for c in corrections)),
    )

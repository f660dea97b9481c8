"""API routers for read-only endpoints."""

from catalog_reconciler.app.api.routers.audit import router as audit_router
from catalog_reconciler.app.api.routers.classification import router as classification_router
from catalog_reconciler.app.api.routers.reapply import router as reapply_router

__all__ = ["audit_router", "classification_router", "reapply_router"]

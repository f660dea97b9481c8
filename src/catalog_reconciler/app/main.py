from __future__ import annotations

from fastapi import FastAPI

from catalog_reconciler.app.api.routers import audit_router, classification_router, reapply_router
from catalog_reconciler.app.health import router as health_router
from catalog_reconciler.observability.logging import configure_logging

configure_logging()

app = FastAPI(title="Catalog reconciler")
app.include_router(health_router)
app.include_router(audit_router, prefix="/v1", tags=["audit"])
app.include_router(classification_router, prefix="/v1", tags=["classification"])
app.include_router(reapply_router, prefix="/v1", tags=["reapply"])

"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends

from catalog_reconciler.adapters.audit.csv_audit_sink import CsvAuditSink
from catalog_reconciler.adapters.config.json_rules_provider import JsonRulesProvider
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.ports.audit_sink import AuditSink
from catalog_reconciler.settings import Settings, get_settings


def get_audit_sink(settings: Settings = Depends(get_settings)) -> AuditSink:
    """Dependency to provide the review audit sink."""
    return CsvAuditSink.for_review(settings)


def get_classification_config(settings: Settings = Depends(get_settings)) -> ClassificationConfig:
    """Dependency to provide classification config with the configured rule tables."""
    return ClassificationConfig.from_settings(settings, JsonRulesProvider(settings.rules_path).get_tables())

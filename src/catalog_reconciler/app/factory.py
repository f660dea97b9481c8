from __future__ import annotations

from pathlib import Path
from typing import Optional

from catalog_reconciler.adapters.audit.csv_audit_sink import CsvAuditSink
from catalog_reconciler.adapters.browser.playwright_session import PlaywrightSessionProvider
from catalog_reconciler.adapters.config.json_rules_provider import JsonRulesProvider
from catalog_reconciler.adapters.console.stdin_console import StdinConsole
from catalog_reconciler.adapters.inputs.audit_log_source import AuditLogSource
from catalog_reconciler.adapters.inputs.bulk_export_source import BulkExportSource
from catalog_reconciler.adapters.locks.file_lock_manager import FileLockManager
from catalog_reconciler.application.errors import SourceNotFoundError
from catalog_reconciler.application.run_context import ReapplySourceKind
from catalog_reconciler.ports.audit_sink import AuditSink
from catalog_reconciler.ports.lock_manager import LockManager
from catalog_reconciler.ports.operator_console import OperatorConsole
from catalog_reconciler.ports.reapply_source import ReapplySource
from catalog_reconciler.ports.rules_provider import RulesProvider
from catalog_reconciler.ports.session_provider import SessionProvider
from catalog_reconciler.settings import Settings, get_settings

LOCK_FILE = ".catalog-reconciler.lock"


def create_adapters(
    rules_path: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> tuple[SessionProvider, AuditSink, RulesProvider, OperatorConsole, LockManager]:
    """Adapters for a live review run: browser session, review audit CSVs, rule tables, terminal and run lock."""
    settings = settings or get_settings()
    session_provider: SessionProvider = PlaywrightSessionProvider(settings)
    audit_sink: AuditSink = CsvAuditSink.for_review(settings)
    rules_provider: RulesProvider = JsonRulesProvider(rules_path or settings.rules_path)
    console: OperatorConsole = StdinConsole()
    lock_manager: LockManager = FileLockManager(Path(settings.output_dir) / LOCK_FILE)
    return (session_provider, audit_sink, rules_provider, console, lock_manager)


def create_reapply_source(
    kind: ReapplySourceKind,
    path: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> ReapplySource:
    """
    Source of previously approved items.

    AUDIT reads the review audit log (or the CSV at `path`); EXPORT reads a
    bulk export CSV and requires `path`.
    """
    settings = settings or get_settings()
    if kind == ReapplySourceKind.EXPORT:
        if not path:
            raise SourceNotFoundError("A bulk export path is required for --source export")
        return BulkExportSource(path)
    if path:
        return AuditLogSource(CsvAuditSink(path))
    return AuditLogSource(CsvAuditSink.for_review(settings))

from __future__ import annotations

import logging
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, List, Optional

from catalog_reconciler.application.errors import (
    SessionUnavailableError,
    StopReason,
    UiSurfaceError,
)
from catalog_reconciler.application.run_context import RunContext
from catalog_reconciler.application.session import SessionHandle
from catalog_reconciler.domain.audit.model import AuditRecord, AuditStatus
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.reapplication.model import Correction
from catalog_reconciler.domain.reapplication.planner import plan_corrections
from catalog_reconciler.ports.audit_sink import AuditSink
from catalog_reconciler.ports.lock_manager import LockManager
from catalog_reconciler.ports.operator_console import OperatorConsole
from catalog_reconciler.ports.reapply_source import ReapplySource
from catalog_reconciler.ports.session_provider import SessionProvider
from catalog_reconciler.settings import Settings

logger = logging.getLogger(__name__)

# Characters of the target description that must appear in the opened item
_VERIFY_PREFIX_CHARS = 10


def opened_item_matches(target: str, opened: str) -> bool:
    """True when the opened item plausibly is the searched one."""
    if not opened:
        return True
    return target[:_VERIFY_PREFIX_CHARS].lower() in opened.lower()


class RuleReapplicationEngine:
    """
    Re-derives category and ledger code for previously approved items and
    applies the differences through the item library.

    The plan never touches the browser. A dry run writes one DRY_RUN record
    per planned correction and stops there.
    """

    def __init__(
        self,
        source: ReapplySource,
        audit_sink: AuditSink,
        config: ClassificationConfig,
        settings: Settings,
        console: OperatorConsole,
        lock_manager: LockManager,
        session_provider: Optional[SessionProvider] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source = source
        self.audit_sink = audit_sink
        self.config = config
        self.settings = settings
        self.console = console
        self.lock_manager = lock_manager
        self.session_provider = session_provider
        self._sleep_fn = sleep

    def _sleep(self, ms: int) -> None:
        if ms > 0:
            self._sleep_fn(ms / 1000.0)

    def plan(self) -> List[Correction]:
        return plan_corrections(self.source.fetch_items(), self.config)

    def _record(self, correction: Correction, status: AuditStatus, notes: str) -> None:
        item = correction.item
        self.audit_sink.append(
            AuditRecord(
                item=item.description,
                status=status,
                vendor=item.vendor,
                product=item.product,
                category=correction.effective_category,
                ledger_code=correction.effective_ledger_code,
                notes=notes,
            )
        )

    @staticmethod
    def _change_note(correction: Correction) -> str:
        item = correction.item
        return (
            f"{item.category or '-'}/{item.ledger_code or '-'} -> "
            f"{correction.effective_category or '-'}/{correction.effective_ledger_code or '-'} "
            f"[{correction.reason}]"
        )

    def run(self, ctx: RunContext) -> dict:
        started_at = datetime.now(timezone.utc)
        self.lock_manager.acquire(ctx)
        try:
            corrections = self.plan()
            planned = len(corrections)
            corrections = corrections[: ctx.limit]
            by_category = Counter(c.effective_category for c in corrections)
            logger.info(
                f"Planned {planned} corrections, applying {len(corrections)}: {dict(by_category)}",
                extra=ctx.log_extra,
            )

            counts: Counter = Counter()
            stop_reason = StopReason.COMPLETED
            if ctx.dry_run:
                for correction in corrections:
                    logger.info(f"[DRY RUN] {correction.item.description!r}: {self._change_note(correction)}")
                    self._record(correction, AuditStatus.DRY_RUN, self._change_note(correction))
                    counts[AuditStatus.DRY_RUN.value] += 1
            elif corrections:
                stop_reason = self._apply_all(ctx, corrections, counts)

            duration_ms = int((datetime.now(timezone.utc) - started_at).total_seconds() * 1000)
            summary = {
                "correlation_id": ctx.correlation_id,
                "mode": "dry_run" if ctx.dry_run else "live",
                "source": ctx.source.value,
                "planned": planned,
                "attempted": sum(n for status, n in counts.items() if status != AuditStatus.DRY_RUN.value),
                "updated": counts[AuditStatus.UPDATED.value],
                "not_found": counts[AuditStatus.NOT_FOUND.value],
                "errors": counts[AuditStatus.ERROR.value] + counts[AuditStatus.CAT_NOT_SET.value],
                "dry_run_previewed": counts[AuditStatus.DRY_RUN.value],
                "stop_reason": stop_reason.value,
                "fatal": stop_reason.is_fatal,
                "duration_ms": duration_ms,
            }
            logger.info(f"Reapplication finished: {summary}", extra=ctx.log_extra)
            return summary
        finally:
            self.lock_manager.release(ctx)

    def _apply_all(self, ctx: RunContext, corrections: List[Correction], counts: Counter) -> StopReason:
        if self.session_provider is None:
            raise SessionUnavailableError("A session provider is required to apply corrections")
        self.session_provider.start()
        self.console.wait_for_enter("Log in, then press ENTER to continue...")
        session = SessionHandle(self.session_provider)
        session.surface.open_item_library()
        self.console.wait_for_enter(f"About to update {len(corrections)} items. Press ENTER to start...")

        for index, correction in enumerate(corrections, start=1):
            logger.info(
                f"[{index}/{len(corrections)}] {correction.item.description[:50]!r}", extra=ctx.log_extra
            )
            try:
                status = self._apply_one(session, correction)
            except SessionUnavailableError as e:
                logger.error(f"Could not reacquire the session: {e}", extra=ctx.log_extra)
                return StopReason.SESSION_LOST
            except Exception as e:
                logger.error(f"Error applying correction: {e}", extra=ctx.log_extra)
                self._record(correction, AuditStatus.ERROR, str(e)[:100])
                status = AuditStatus.ERROR
                try:
                    self._reorient(session)
                except SessionUnavailableError as lost:
                    logger.error(f"Could not reacquire the session: {lost}", extra=ctx.log_extra)
                    counts[status.value] += 1
                    return StopReason.SESSION_LOST
            counts[status.value] += 1

            if ctx.pause_each:
                self.console.wait_for_enter("Press ENTER for next item...")
            self._sleep(self.settings.reapply_delay_between_items_ms)
        return StopReason.COMPLETED

    def _apply_one(self, session: SessionHandle, correction: Correction) -> AuditStatus:
        surface = session.surface
        description = correction.item.description
        surface.open_item_library()

        if not surface.search_and_open_item(description):
            logger.warning("Item not found in library search")
            self._record(correction, AuditStatus.NOT_FOUND, "Item not found in library search")
            surface.clear_search()
            return AuditStatus.NOT_FOUND

        opened = surface.read_item().description
        if not opened_item_matches(description, opened):
            logger.warning(f"Wrong item loaded: {opened[:50]!r}")
            self._record(correction, AuditStatus.NOT_FOUND, f"Wrong item loaded: {opened[:50]}")
            surface.close_item_detail()
            return AuditStatus.NOT_FOUND

        if correction.target_category and not surface.set_category(correction.target_category):
            logger.warning(f"Category option {correction.target_category!r} not found")
            self._record(correction, AuditStatus.CAT_NOT_SET, "Category option not found")
            surface.close_item_detail()
            return AuditStatus.CAT_NOT_SET

        if correction.target_ledger_code and not surface.set_ledger_code(correction.target_ledger_code):
            logger.warning("Ledger code field not found")
            self._record(correction, AuditStatus.ERROR, "Ledger code field not found")
            surface.close_item_detail()
            return AuditStatus.ERROR

        surface.invoke_save()
        self._sleep(self.settings.delay_after_action_ms)
        self._record(correction, AuditStatus.UPDATED, self._change_note(correction))
        surface.close_item_detail()
        return AuditStatus.UPDATED

    def _reorient(self, session: SessionHandle) -> None:
        try:
            session.surface.open_item_library()
        except UiSurfaceError as e:
            logger.warning(f"Could not return to the item library: {e}")
            session.reacquire()
            self._sleep(self.settings.recovery_delay_ms)

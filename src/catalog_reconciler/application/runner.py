from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from catalog_reconciler.application.errors import RunCancelledError, StopReason
from catalog_reconciler.application.navigator import BatchNavigator
from catalog_reconciler.application.processor import ItemProcessor
from catalog_reconciler.application.run_context import RunContext
from catalog_reconciler.application.session import SessionHandle
from catalog_reconciler.application.supervisor import RecoverySupervisor
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.review.outcome import RunState
from catalog_reconciler.ports.audit_sink import AuditSink
from catalog_reconciler.ports.lock_manager import LockManager
from catalog_reconciler.ports.operator_console import OperatorConsole
from catalog_reconciler.ports.rules_provider import RulesProvider
from catalog_reconciler.ports.session_provider import SessionProvider
from catalog_reconciler.settings import Settings

logger = logging.getLogger(__name__)

LOGIN_PROMPT = "Log in and open the item review screen, then press ENTER to continue..."


class Runner:
    def __init__(
        self,
        session_provider: SessionProvider,
        audit_sink: AuditSink,
        rules_provider: RulesProvider,
        console: OperatorConsole,
        lock_manager: LockManager,
        settings: Settings,
        cancellation_check: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session_provider = session_provider
        self.audit_sink = audit_sink
        self.rules_provider = rules_provider
        self.console = console
        self.lock_manager = lock_manager
        self.settings = settings
        self.cancellation_check = cancellation_check
        self.sleep = sleep

    def run(self, ctx: RunContext) -> dict:
        """Run the review loop until the queue drains, the limit is hit or a breaker trips."""
        started_at = datetime.now(timezone.utc)
        self.lock_manager.acquire(ctx)
        try:
            config = ClassificationConfig.from_settings(self.settings, self.rules_provider.get_tables())
            logger.info(
                f"Starting review run mode={'dry_run' if ctx.dry_run else 'live'} limit={ctx.limit}",
                extra=ctx.log_extra,
            )

            self.session_provider.start()
            self.console.wait_for_enter(LOGIN_PROMPT)

            session = SessionHandle(self.session_provider)
            processor = ItemProcessor(session, self.audit_sink, config, self.settings, ctx, sleep=self.sleep)
            navigator = BatchNavigator(session, processor, self.console, self.settings, ctx, sleep=self.sleep)
            supervisor = RecoverySupervisor(
                session,
                navigator,
                self.console,
                self.settings,
                ctx,
                cancellation_check=self.cancellation_check,
                sleep=self.sleep,
            )

            run_state = RunState()
            try:
                stop_reason = supervisor.run(run_state)
            except RunCancelledError as e:
                logger.warning(str(e), extra=ctx.log_extra)
                stop_reason = StopReason.CANCELLED

            if not run_state.check_accounting():
                logger.error(f"Outcome counters do not add up: {run_state.as_counts()}", extra=ctx.log_extra)

            duration_ms = int((datetime.now(timezone.utc) - started_at).total_seconds() * 1000)
            summary = {
                "correlation_id": ctx.correlation_id,
                "mode": "dry_run" if ctx.dry_run else "live",
                "limit": ctx.limit,
                **run_state.as_counts(),
                "stop_reason": stop_reason.value,
                "fatal": stop_reason.is_fatal,
                "duration_ms": duration_ms,
            }
            logger.info(f"Run finished: {summary}", extra=ctx.log_extra)
            return summary
        finally:
            self.lock_manager.release(ctx)

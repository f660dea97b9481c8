from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from catalog_reconciler.application.errors import (
    FailureKind,
    ReconcilerError,
    RunCancelledError,
    SessionUnavailableError,
    StopReason,
    TransientSessionError,
)
from catalog_reconciler.application.navigator import BatchNavigator, StepResult
from catalog_reconciler.application.run_context import RunContext
from catalog_reconciler.application.session import SessionHandle
from catalog_reconciler.domain.review.model import ViewKind
from catalog_reconciler.domain.review.outcome import RunState
from catalog_reconciler.ports.operator_console import OperatorConsole
from catalog_reconciler.settings import Settings

logger = logging.getLogger(__name__)


class RecoverySupervisor:
    """
    Owns the run loop: limits, circuit breakers and session recovery.

    Non-transient failures are counted and the step is retried after a
    back-off; the run stops once `max_consecutive_errors` failures happen
    in a row. Transient session failures trigger a reacquire of the
    session handle and a re-orientation on the current view.
    """

    def __init__(
        self,
        session: SessionHandle,
        navigator: BatchNavigator,
        console: OperatorConsole,
        settings: Settings,
        ctx: RunContext,
        cancellation_check: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self.navigator = navigator
        self.console = console
        self.settings = settings
        self.ctx = ctx
        self.cancellation_check = cancellation_check
        self._sleep_fn = sleep

    def _sleep(self, ms: int) -> None:
        if ms > 0:
            self._sleep_fn(ms / 1000.0)

    def run(self, run_state: RunState) -> StopReason:
        if not self.navigator.open_review_queue(run_state):
            return StopReason.COMPLETED
        if not self.ctx.dry_run:
            self.console.wait_for_enter("LIVE MODE: items will be approved. Press ENTER to start...")

        reloads = 0
        while True:
            if run_state.processed >= self.ctx.limit:
                logger.info(f"Reached item limit ({self.ctx.limit})", extra=self.ctx.log_extra)
                return StopReason.LIMIT_REACHED
            if run_state.consecutive_stuck >= self.settings.max_consecutive_stuck:
                logger.error(
                    f"Stuck {run_state.consecutive_stuck} times in a row; stopping", extra=self.ctx.log_extra
                )
                return StopReason.STUCK_CAP
            if self.cancellation_check and self.cancellation_check():
                raise RunCancelledError(f"Run cancelled for correlation_id={self.ctx.correlation_id}")

            try:
                result = self.navigator.step(run_state)
                reloads = 0
                if result == StepResult.FINISHED:
                    logger.info("No more items to review", extra=self.ctx.log_extra)
                    return StopReason.COMPLETED
                continue
            except TransientSessionError as e:
                reloads += 1
                logger.warning(
                    f"Session reloaded or view detached ({reloads}/{self.settings.max_consecutive_errors}): {e}",
                    extra=self.ctx.log_extra,
                )
                # A page that reloads on every step never makes progress
                if reloads >= self.settings.max_consecutive_errors:
                    logger.error("Too many reloads in a row; stopping", extra=self.ctx.log_extra)
                    return StopReason.ERROR_CAP
                try:
                    recovered = self._recover(run_state)
                except SessionUnavailableError as lost:
                    logger.error(f"Could not reacquire the session: {lost}", extra=self.ctx.log_extra)
                    return StopReason.SESSION_LOST
                if recovered == StepResult.FINISHED:
                    return StopReason.COMPLETED
                if recovered == StepResult.CONTINUE:
                    continue
                error: Exception = e
            except SessionUnavailableError as lost:
                logger.error(f"Session unavailable: {lost}", extra=self.ctx.log_extra)
                return StopReason.SESSION_LOST
            except Exception as e:
                error = e

            run_state.consecutive_errors += 1
            kind = error.kind if isinstance(error, ReconcilerError) else FailureKind.FATAL
            logger.error(
                f"Error ({run_state.consecutive_errors}/{self.settings.max_consecutive_errors}, {kind.value}): {error}",
                exc_info=error,
                extra=self.ctx.log_extra,
            )
            if run_state.consecutive_errors >= self.settings.max_consecutive_errors:
                logger.error("Too many consecutive errors; stopping", extra=self.ctx.log_extra)
                return StopReason.ERROR_CAP
            self._capture_screenshot()
            self._sleep(self.settings.error_backoff_ms)

    def _recover(self, run_state: RunState) -> Optional[StepResult]:
        """
        Reacquire the session and get back onto a pending item.

        Returns None when re-orientation itself failed; the caller counts
        that as an error. SessionUnavailableError propagates.
        """
        self._sleep(self.settings.recovery_delay_ms)
        surface = self.session.reacquire()
        try:
            view = surface.inspect_view()
            logger.info(f"Recovered onto view {view.value}", extra=self.ctx.log_extra)
            if view == ViewKind.ITEM_DETAIL:
                found = True
            elif view == ViewKind.ITEM_LIST:
                found = surface.open_first_pending_item()
            else:
                surface.apply_pending_filter()
                found = surface.open_first_pending_item()
        except ReconcilerError as e:
            logger.error(f"Recovery failed: {e}", extra=self.ctx.log_extra)
            return None

        run_state.reset_position()
        run_state.consecutive_errors = 0
        run_state.consecutive_stuck = 0
        if not found:
            logger.info("No pending items after recovery", extra=self.ctx.log_extra)
            return StepResult.FINISHED
        return StepResult.CONTINUE

    def _capture_screenshot(self) -> None:
        label = f"error-{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S')}"
        try:
            path = self.session.surface.capture_screenshot(label)
        except ReconcilerError as e:
            logger.debug(f"Screenshot failed: {e}", extra=self.ctx.log_extra)
            return
        if path:
            logger.info(f"Screenshot saved: {path}", extra=self.ctx.log_extra)

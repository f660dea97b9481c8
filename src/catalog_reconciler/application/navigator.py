from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from catalog_reconciler.application.processor import ItemProcessor
from catalog_reconciler.application.run_context import RunContext
from catalog_reconciler.application.session import SessionHandle
from catalog_reconciler.domain.review.outcome import OutcomeKind, ProcessingOutcome, RunState
from catalog_reconciler.ports.operator_console import OperatorConsole
from catalog_reconciler.settings import Settings

logger = logging.getLogger(__name__)


class StepResult(str, Enum):
    CONTINUE = "continue"
    FINISHED = "finished"


class BatchNavigator:
    """Moves through the pending-review queue one item at a time, reloading batches as they drain."""

    def __init__(
        self,
        session: SessionHandle,
        processor: ItemProcessor,
        console: OperatorConsole,
        settings: Settings,
        ctx: RunContext,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self.processor = processor
        self.console = console
        self.settings = settings
        self.ctx = ctx
        self._sleep_fn = sleep

    def _sleep(self, ms: int) -> None:
        if ms > 0:
            self._sleep_fn(ms / 1000.0)

    def open_review_queue(self, run_state: RunState) -> bool:
        """Filter the list to pending items and open the first one. False when nothing is pending."""
        surface = self.session.surface
        surface.apply_pending_filter()
        found = surface.open_first_pending_item()
        run_state.reset_position()
        if not found:
            logger.info("No to-review items found", extra=self.ctx.log_extra)
        return found

    def _next_batch(self, run_state: RunState, dismiss: bool) -> StepResult:
        if dismiss:
            self.session.surface.dismiss_batch_complete()
        logger.info("Loading next batch", extra=self.ctx.log_extra)
        if self.open_review_queue(run_state):
            return StepResult.CONTINUE
        return StepResult.FINISHED

    def step(self, run_state: RunState) -> StepResult:
        outcome = self.processor.process(run_state)
        run_state.record(outcome)

        if outcome.kind == OutcomeKind.BATCH_COMPLETE:
            logger.info("Batch complete", extra=self.ctx.log_extra)
            return self._next_batch(run_state, dismiss=True)

        if outcome.kind == OutcomeKind.STUCK:
            return self._handle_stuck(run_state)

        run_state.consecutive_errors = 0
        self._log_progress(run_state, outcome)

        # Forced navigation from the last item has nowhere to go
        if outcome.kind in (OutcomeKind.SKIPPED, OutcomeKind.FLAGGED) and outcome.is_last_in_batch:
            logger.info("Last item in batch was not approved; reopening the queue", extra=self.ctx.log_extra)
            return self._next_batch(run_state, dismiss=False)

        # Nothing leaves the queue in a dry run, so later batches never load
        if outcome.kind == OutcomeKind.DRY_RUN_PREVIEW and outcome.is_last_in_batch:
            logger.info("Dry run reached the end of the batch", extra=self.ctx.log_extra)
            return StepResult.FINISHED

        run_state.remember(outcome)

        if self.ctx.pause_each:
            self.console.wait_for_enter("Press ENTER for next item...")

        if self.session.surface.detect_batch_complete():
            logger.info("Batch complete", extra=self.ctx.log_extra)
            run_state.batches_completed += 1
            return self._next_batch(run_state, dismiss=True)

        self._sleep(self.settings.delay_between_items_ms)
        return StepResult.CONTINUE

    def _handle_stuck(self, run_state: RunState) -> StepResult:
        stuck = run_state.consecutive_stuck
        limit = self.settings.max_consecutive_stuck
        logger.warning(f"Stuck count: {stuck}/{limit}", extra=self.ctx.log_extra)
        if self.settings.stuck_reopen_after <= stuck < limit:
            logger.info("Reopening the review queue to get unstuck", extra=self.ctx.log_extra)
            return self._next_batch(run_state, dismiss=False)
        return StepResult.CONTINUE

    def _log_progress(self, run_state: RunState, outcome: ProcessingOutcome) -> None:
        logger.info(
            f"[{outcome.kind.value}] {outcome.description[:60]!r} | processed={run_state.processed} "
            f"approved={run_state.approved} flagged={run_state.flagged} skipped={run_state.skipped}",
            extra=self.ctx.log_extra,
        )

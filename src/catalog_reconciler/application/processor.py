from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional, Tuple, Union

from catalog_reconciler.application.errors import TransientSessionError
from catalog_reconciler.application.run_context import RunContext
from catalog_reconciler.application.session import SessionHandle
from catalog_reconciler.domain.audit.model import AuditRecord, AuditStatus
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.classification.evaluator import classify
from catalog_reconciler.domain.classification.model import ClassificationResult
from catalog_reconciler.domain.review.model import (
    ApprovalVerdict,
    FieldId,
    ItemSnapshot,
    disambiguate_approval,
)
from catalog_reconciler.domain.review.outcome import OutcomeKind, ProcessingOutcome, RunState
from catalog_reconciler.ports.audit_sink import AuditSink
from catalog_reconciler.settings import Settings

logger = logging.getLogger(__name__)

NOTE_ALREADY_APPROVED = "Already approved"
NOTE_DID_NOT_ADVANCE = "Page did not advance after approve and force navigation"
NOTE_PRODUCT_FAILED = "Could not create or assign product"
NOTE_VALIDATION_BLOCKED = "Approve blocked by validation error (missing required fields)"
NOTE_APPROVE_MISSING = "Approve button not found"
NOTE_STILL_TO_REVIEW = "Approve did not take effect (item still to review)"
NOTE_NO_PROGRESS = "Page did not advance after approve"
NOTE_RELOADED = "Page reloaded after approve"
NOTE_FORCED = "Advanced by forced navigation after approve"


class ItemState(str, Enum):
    READING = "reading"
    DUPLICATE_CHECK = "duplicate_check"
    CLASSIFYING = "classifying"
    FIELD_CORRECTION = "field_correction"
    CATEGORY_ASSIGNMENT = "category_assignment"
    LEDGER_ASSIGNMENT = "ledger_assignment"
    PRODUCT_ASSIGNMENT = "product_assignment"
    INVENTORY_UNIT_CORRECTION = "inventory_unit_correction"
    APPROVING = "approving"
    VERIFYING = "verifying"
    TERMINAL = "terminal"


class ItemProcessor:
    """
    Drives one displayed item from the first read to a terminal outcome.

    Each Approved, Flagged, Skipped, Stuck and dry-run outcome writes exactly
    one audit record. A failed product assignment adds a soft FLAGGED record
    without stopping the item.
    """

    def __init__(
        self,
        session: SessionHandle,
        audit_sink: AuditSink,
        config: ClassificationConfig,
        settings: Settings,
        ctx: RunContext,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self.audit_sink = audit_sink
        self.config = config
        self.settings = settings
        self.ctx = ctx
        self._sleep_fn = sleep
        self.state = ItemState.READING

    def _sleep(self, ms: int) -> None:
        if ms > 0:
            self._sleep_fn(ms / 1000.0)

    def _enter(self, state: ItemState) -> None:
        self.state = state
        logger.debug(f"-> {state.value}", extra=self.ctx.log_extra)

    def _outcome(self, kind: OutcomeKind, snapshot: ItemSnapshot, notes: str = "") -> ProcessingOutcome:
        return ProcessingOutcome(
            kind=kind,
            description=snapshot.description,
            position=snapshot.position,
            total=snapshot.total,
            vendor=snapshot.vendor,
            notes=notes,
        )

    def _record(
        self,
        snapshot: ItemSnapshot,
        status: AuditStatus,
        notes: str = "",
        result: Optional[ClassificationResult] = None,
    ) -> None:
        if result is not None:
            record = AuditRecord(
                item=snapshot.description,
                status=status,
                vendor=snapshot.vendor,
                product=result.normalized_product_name,
                category=result.target_category,
                ledger_code=result.target_ledger_code or snapshot.ledger_code,
                unit_class=result.unit_class.value,
                notes=notes,
            )
        else:
            record = AuditRecord(
                item=snapshot.description,
                status=status,
                vendor=snapshot.vendor,
                category=snapshot.category,
                ledger_code=snapshot.ledger_code,
                notes=notes,
            )
        self.audit_sink.append(record)

    def process(self, run_state: RunState) -> ProcessingOutcome:
        self._enter(ItemState.READING)
        snapshot = self.session.surface.read_item()

        if run_state.is_duplicate(snapshot.description, snapshot.position):
            resolved = self._resolve_duplicate(snapshot)
            if isinstance(resolved, ProcessingOutcome):
                return resolved
            snapshot = resolved

        logger.info(
            f"Item {snapshot.position} of {snapshot.total}: {snapshot.description!r} "
            f"vendor={snapshot.vendor!r} category={snapshot.category!r} ledger={snapshot.ledger_code!r} "
            f"product={snapshot.has_product} size={snapshot.size or '(empty)'!r} "
            f"unit={snapshot.unit!r} ({snapshot.unit_kind.value}) "
            f"inventory_unit={snapshot.inventory_unit!r} ({snapshot.inventory_unit_kind.value})",
            extra=self.ctx.log_extra,
        )
        if snapshot.validation_message:
            logger.info(f"Check your work: {snapshot.validation_message[:100]}", extra=self.ctx.log_extra)

        if snapshot.is_approved:
            return self._skip(snapshot)

        self._enter(ItemState.CLASSIFYING)
        result = classify(snapshot.description, snapshot.vendor, self.config)
        logger.info(
            f"Target category={result.target_category!r} ledger={result.target_ledger_code!r} "
            f"product={result.normalized_product_name!r} unit_class={result.unit_class.value} "
            f"reason={result.match_reason}",
            extra=self.ctx.log_extra,
        )

        if self.ctx.dry_run:
            return self._preview(snapshot, result)

        self._correct_fields(snapshot)
        self._assign_category(snapshot, result)
        self._assign_ledger(result)
        self._assign_product(snapshot, result)
        self._correct_inventory_unit(snapshot)

        approved, note = self._approve(snapshot)
        self._enter(ItemState.TERMINAL)
        if approved:
            notes = "; ".join(n for n in (result.audit_note, note) if n)
            self._record(snapshot, AuditStatus.APPROVED, notes, result)
            logger.info("APPROVED", extra=self.ctx.log_extra)
            return self._outcome(OutcomeKind.APPROVED, snapshot, notes)
        return self._flag(snapshot, result, note)

    def _resolve_duplicate(self, snapshot: ItemSnapshot) -> Union[ItemSnapshot, ProcessingOutcome]:
        """Force one navigation and re-read; the page failed to advance after the previous item."""
        self._enter(ItemState.DUPLICATE_CHECK)
        logger.warning(
            f"Duplicate read {snapshot.description!r} (item {snapshot.position}); forcing navigation",
            extra=self.ctx.log_extra,
        )
        surface = self.session.surface
        surface.force_advance()
        self._sleep(self.settings.navigation_settle_ms)

        fresh = surface.read_item()
        if fresh.key != snapshot.key:
            return fresh

        if surface.detect_batch_complete():
            logger.info("Still on the same item and the batch is complete", extra=self.ctx.log_extra)
            return self._outcome(OutcomeKind.BATCH_COMPLETE, snapshot)

        self._enter(ItemState.TERMINAL)
        logger.warning("Still stuck on the same item after forced navigation", extra=self.ctx.log_extra)
        self._record(snapshot, AuditStatus.STUCK, NOTE_DID_NOT_ADVANCE)
        return self._outcome(OutcomeKind.STUCK, snapshot, NOTE_DID_NOT_ADVANCE)

    def _skip(self, snapshot: ItemSnapshot) -> ProcessingOutcome:
        self._enter(ItemState.TERMINAL)
        logger.info("Already APPROVED, skipping", extra=self.ctx.log_extra)
        # Record only once the page has moved on; a reload here re-reads this item
        self.session.surface.force_advance()
        self._record(snapshot, AuditStatus.SKIPPED, NOTE_ALREADY_APPROVED)
        return self._outcome(OutcomeKind.SKIPPED, snapshot, NOTE_ALREADY_APPROVED)

    def _preview(self, snapshot: ItemSnapshot, result: ClassificationResult) -> ProcessingOutcome:
        self._enter(ItemState.TERMINAL)
        logger.info("[DRY RUN] Would process this item with the targets above", extra=self.ctx.log_extra)
        self.session.surface.force_advance()
        self._record(snapshot, AuditStatus.DRY_RUN, result.audit_note, result)
        return self._outcome(OutcomeKind.DRY_RUN_PREVIEW, snapshot, result.audit_note)

    def _correct_fields(self, snapshot: ItemSnapshot) -> None:
        self._enter(ItemState.FIELD_CORRECTION)
        surface = self.session.surface
        # Approval is blocked while size is empty
        if snapshot.size_missing:
            logger.info(f"Size is empty; setting to {self.settings.default_size}", extra=self.ctx.log_extra)
            if not surface.set_field(FieldId.SIZE, self.settings.default_size):
                logger.warning("Size field not found", extra=self.ctx.log_extra)
        if snapshot.unit_missing:
            logger.info(f"Unit is missing; setting to {self.settings.default_unit}", extra=self.ctx.log_extra)
            if not surface.set_field(FieldId.UNIT, self.settings.default_unit, snapshot.unit_kind):
                logger.warning("Could not set unit, proceeding anyway", extra=self.ctx.log_extra)

    def _assign_category(self, snapshot: ItemSnapshot, result: ClassificationResult) -> None:
        self._enter(ItemState.CATEGORY_ASSIGNMENT)
        if snapshot.category.strip().lower() == result.target_category.strip().lower():
            return
        logger.info(f"Setting category to {result.target_category!r}", extra=self.ctx.log_extra)
        if not self.session.surface.set_category(result.target_category):
            logger.warning(f"Category option {result.target_category!r} not found", extra=self.ctx.log_extra)

    def _assign_ledger(self, result: ClassificationResult) -> None:
        self._enter(ItemState.LEDGER_ASSIGNMENT)
        if result.target_ledger_code is None:
            return
        # Always re-issued: the target is derived fresh, not from the current value.
        logger.info(f"Setting ledger code to {result.target_ledger_code!r}", extra=self.ctx.log_extra)
        if not self.session.surface.set_ledger_code(result.target_ledger_code):
            logger.warning("Ledger code field not found", extra=self.ctx.log_extra)

    def _assign_product(self, snapshot: ItemSnapshot, result: ClassificationResult) -> None:
        self._enter(ItemState.PRODUCT_ASSIGNMENT)
        if snapshot.has_product:
            return
        logger.info(f"Creating product {result.normalized_product_name!r}", extra=self.ctx.log_extra)
        if not self.session.surface.assign_or_create_product(result.normalized_product_name, result.unit_class):
            logger.warning("Could not create product, proceeding anyway", extra=self.ctx.log_extra)
            self._record(snapshot, AuditStatus.FLAGGED, NOTE_PRODUCT_FAILED, result)

    def _correct_inventory_unit(self, snapshot: ItemSnapshot) -> None:
        self._enter(ItemState.INVENTORY_UNIT_CORRECTION)
        if not snapshot.inventory_unit_missing:
            return
        logger.info("Inventory unit missing; attempting to set", extra=self.ctx.log_extra)
        if not self.session.surface.set_field(
            FieldId.INVENTORY_UNIT, self.settings.default_unit, snapshot.inventory_unit_kind
        ):
            logger.warning("Could not set inventory unit, proceeding anyway", extra=self.ctx.log_extra)

    def _approve(self, snapshot: ItemSnapshot) -> Tuple[bool, str]:
        self._enter(ItemState.APPROVING)
        surface = self.session.surface
        if not surface.invoke_approve():
            logger.warning(NOTE_APPROVE_MISSING, extra=self.ctx.log_extra)
            return False, NOTE_APPROVE_MISSING

        # Give any dialog or validation banner time to render
        self._sleep(self.settings.approval_settle_ms)
        try:
            probe = surface.probe_approval()
        except TransientSessionError:
            logger.info(f"{NOTE_RELOADED}; treating as advanced", extra=self.ctx.log_extra)
            self._sleep(self.settings.recovery_delay_ms)
            return True, NOTE_RELOADED

        verdict = disambiguate_approval(snapshot.description, probe)
        if verdict == ApprovalVerdict.ADVANCED:
            logger.info(
                f"Page already advanced to {probe.description[:40]!r}; banner belongs to the next item",
                extra=self.ctx.log_extra,
            )
            self._sleep(self.settings.delay_after_action_ms)
            return True, ""
        if verdict == ApprovalVerdict.BLOCKED:
            logger.warning("Validation error on current item (description unchanged)", extra=self.ctx.log_extra)
            return False, NOTE_VALIDATION_BLOCKED
        return self._verify(snapshot)

    def _verify(self, snapshot: ItemSnapshot) -> Tuple[bool, str]:
        self._enter(ItemState.VERIFYING)
        surface = self.session.surface
        try:
            surface.confirm_assign_products()
            if surface.wait_for_change(
                snapshot.description, snapshot.position, self.settings.max_wait_for_navigation_ms
            ):
                return True, ""

            probe = surface.probe_approval()
            if probe.still_to_review and probe.description == snapshot.description:
                logger.warning(NOTE_STILL_TO_REVIEW, extra=self.ctx.log_extra)
                return False, NOTE_STILL_TO_REVIEW

            logger.warning("Page did not advance after approve; forcing navigation", extra=self.ctx.log_extra)
            surface.force_advance()
            if surface.wait_for_change(snapshot.description, snapshot.position, self.settings.navigation_settle_ms):
                return True, NOTE_FORCED
            return False, NOTE_NO_PROGRESS
        except TransientSessionError:
            logger.info(f"{NOTE_RELOADED}; approve likely succeeded", extra=self.ctx.log_extra)
            self._sleep(self.settings.recovery_delay_ms)
            return True, NOTE_RELOADED

    def _flag(self, snapshot: ItemSnapshot, result: ClassificationResult, note: str) -> ProcessingOutcome:
        """Approval blocked: keep the partial edits, move on, and leave the item to a human."""
        logger.warning("Could not approve; saving current state and moving on", extra=self.ctx.log_extra)
        surface = self.session.surface
        try:
            surface.dismiss_dialogs()
            surface.invoke_save()
            self._sleep(self.settings.navigation_settle_ms)
            surface.force_advance()
        except TransientSessionError as e:
            logger.warning(f"Session reloaded while saving flagged item: {e}", extra=self.ctx.log_extra)
            self._sleep(self.settings.recovery_delay_ms)
        notes = f"{note}. Saved and skipped."
        self._record(snapshot, AuditStatus.FLAGGED, notes, result)
        return self._outcome(OutcomeKind.FLAGGED, snapshot, notes)

from __future__ import annotations

import pytest

from catalog_reconciler.application import processor as item_processor
from catalog_reconciler.application.errors import TransientSessionError
from catalog_reconciler.application.processor import ItemProcessor
from catalog_reconciler.domain.audit.model import AuditStatus
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.classification.model import UnitClass
from catalog_reconciler.domain.review.model import FieldId, FieldKind
from catalog_reconciler.domain.review.outcome import OutcomeKind, ProcessingOutcome, RunState
from fakes import (
    ADVANCE,
    BANNER_NEXT,
    BLOCKED,
    DELAYED,
    RELOAD,
    SILENT,
    FakeItem,
    make_ctx,
    no_sleep,
)


@pytest.fixture
def make_processor(session, sink, settings):
    def _make(dry_run: bool = False) -> ItemProcessor:
        return ItemProcessor(
            session, sink, ClassificationConfig(), settings, make_ctx(dry_run=dry_run), sleep=no_sleep
        )

    return _make


def _open(surface, *items: FakeItem) -> None:
    surface.batches = [list(items)]
    surface.batch = surface.batches[0]
    surface.index = 0


def test_approve_advances_to_next_item(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS"), FakeItem("PORK BELLY"))

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.APPROVED
    assert outcome.description == "CHICKEN THIGH BONELESS"
    assert surface.item.description == "PORK BELLY"
    assert len(sink.records) == 1
    record = sink.records[0]
    assert record.status == AuditStatus.APPROVED
    assert record.product == "chicken thigh boneless"
    assert record.category == "Food Purchases"
    assert record.ledger_code == "5000"
    assert record.unit_class == UnitClass.WEIGHT.value


def test_banner_on_next_item_counts_as_approved(surface, sink, make_processor) -> None:
    """The validation banner that shows up after the page advanced belongs to the next item."""
    _open(surface, FakeItem("CHICKEN THIGH BONELESS", behaviour=BANNER_NEXT), FakeItem("PORK BELLY"))

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.APPROVED
    assert [r.status for r in sink.records] == [AuditStatus.APPROVED]
    assert surface.called("invoke_save") == []


def test_blocked_approval_is_flagged_and_saved(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS", behaviour=BLOCKED), FakeItem("PORK BELLY"))

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.FLAGGED
    assert surface.batches[0][0].saved is True
    assert surface.item.description == "PORK BELLY"
    assert len(sink.records) == 1
    assert sink.records[0].status == AuditStatus.FLAGGED
    assert sink.records[0].notes == f"{item_processor.NOTE_VALIDATION_BLOCKED}. Saved and skipped."


def test_silent_approval_is_flagged_as_still_to_review(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS", behaviour=SILENT), FakeItem("PORK BELLY"))

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.FLAGGED
    assert item_processor.NOTE_STILL_TO_REVIEW in sink.records[0].notes
    assert surface.called("confirm_assign_products")


def test_delayed_navigation_counts_as_approved(surface, sink, make_processor, settings) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS", behaviour=DELAYED), FakeItem("PORK BELLY"))

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.APPROVED
    wait = surface.called("wait_for_change")[0]
    assert wait[1:] == ("CHICKEN THIGH BONELESS", 1, settings.max_wait_for_navigation_ms)


def test_page_reload_after_approve_counts_as_approved(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS", behaviour=RELOAD), FakeItem("PORK BELLY"))

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.APPROVED
    assert sink.records[0].status == AuditStatus.APPROVED
    assert item_processor.NOTE_RELOADED in sink.records[0].notes


def test_missing_approve_button_is_flagged(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS"), FakeItem("PORK BELLY"))
    surface.approve_missing = True

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.FLAGGED
    assert sink.records[0].notes.startswith(item_processor.NOTE_APPROVE_MISSING)
    assert surface.called("probe_approval") == []


def test_approving_last_item_completes_batch(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS"))

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.APPROVED
    assert outcome.is_last_in_batch is True
    assert surface.batch_complete is True


def test_already_approved_item_is_skipped(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS", is_approved=True), FakeItem("PORK BELLY"))

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.SKIPPED
    assert sink.records[0].status == AuditStatus.SKIPPED
    assert sink.records[0].notes == item_processor.NOTE_ALREADY_APPROVED
    assert surface.called("invoke_approve") == []
    assert surface.item.description == "PORK BELLY"


def test_dry_run_records_preview_and_edits_nothing(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("SAKE 300ML JUNMAI GINJO", vendor="Empire Distributors", size=""), FakeItem("PORK BELLY"))

    outcome = make_processor(dry_run=True).process(RunState())

    assert outcome.kind == OutcomeKind.DRY_RUN_PREVIEW
    record = sink.records[0]
    assert record.status == AuditStatus.DRY_RUN
    assert record.category == "Liquor"
    assert record.ledger_code == "Event materials"
    assert record.unit_class == UnitClass.VOLUME.value
    for name in ("set_field", "set_category", "set_ledger_code", "invoke_approve", "invoke_save"):
        assert surface.called(name) == []
    assert surface.called("force_advance")


@pytest.mark.parametrize("dry_run, is_approved", [(False, True), (True, False)])
def test_reload_while_leaving_item_writes_no_record(surface, sink, make_processor, dry_run, is_approved) -> None:
    """The item is recorded only after the page moves on, so a retry after recovery writes it once."""
    _open(surface, FakeItem("CHICKEN THIGH BONELESS", is_approved=is_approved), FakeItem("PORK BELLY"))
    surface.advance_errors = [TransientSessionError("Target page, context or browser has been closed")]
    processor = make_processor(dry_run=dry_run)

    with pytest.raises(TransientSessionError):
        processor.process(RunState())
    assert sink.records == []

    outcome = processor.process(RunState())

    assert outcome.description == "CHICKEN THIGH BONELESS"
    assert [r.item for r in sink.records] == ["CHICKEN THIGH BONELESS"]
    assert surface.item.description == "PORK BELLY"


def test_missing_fields_are_filled_before_approval(surface, sink, make_processor, settings) -> None:
    _open(
        surface,
        FakeItem("CHICKEN THIGH BONELESS", size="", unit="Select unit", inventory_unit=""),
        FakeItem("PORK BELLY"),
    )

    make_processor().process(RunState())

    assert surface.called("set_field") == [
        ("set_field", FieldId.SIZE, settings.default_size, FieldKind.NONE),
        ("set_field", FieldId.UNIT, settings.default_unit, FieldKind.COMBOBOX),
        ("set_field", FieldId.INVENTORY_UNIT, settings.default_unit, FieldKind.SELECT),
    ]


def test_category_is_only_set_when_it_differs(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS", category="food purchases"), FakeItem("BLEACH GERMICIDAL 1GAL"))
    processor = make_processor()

    processor.process(RunState())
    assert surface.called("set_category") == []
    assert surface.called("set_ledger_code") == [("set_ledger_code", "5000")]

    processor.process(RunState())
    assert surface.called("set_category") == [("set_category", "Cleaning Supplies")]
    assert sink.records[-1].product == "bleach germicidal"
    assert sink.records[-1].unit_class == UnitClass.EACH.value


def test_product_is_created_when_missing(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("BEEF SHORT RIB 10LB FRZ", has_product=False), FakeItem("PORK BELLY"))

    make_processor().process(RunState())

    assert surface.called("assign_or_create_product") == [
        ("assign_or_create_product", "beef short rib", UnitClass.WEIGHT)
    ]


def test_product_failure_adds_soft_flag_and_still_approves(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("BEEF SHORT RIB 10LB FRZ", has_product=False), FakeItem("PORK BELLY"))
    surface.product_fails = True

    outcome = make_processor().process(RunState())

    assert outcome.kind == OutcomeKind.APPROVED
    assert [r.status for r in sink.records] == [AuditStatus.FLAGGED, AuditStatus.APPROVED]
    assert sink.records[0].notes == item_processor.NOTE_PRODUCT_FAILED


def test_duplicate_read_that_does_not_move_is_stuck(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS", category="Produce", ledger_code="5100"), FakeItem("PORK BELLY"))
    surface.frozen = True
    state = RunState()
    state.remember(ProcessingOutcome(OutcomeKind.APPROVED, "CHICKEN THIGH BONELESS", 1, 2))

    outcome = make_processor().process(state)

    assert outcome.kind == OutcomeKind.STUCK
    record = sink.records[0]
    assert record.status == AuditStatus.STUCK
    assert record.notes == item_processor.NOTE_DID_NOT_ADVANCE
    assert record.category == "Produce"
    assert record.ledger_code == "5100"
    assert surface.called("invoke_approve") == []
    assert len(surface.called("force_advance")) == 1


def test_duplicate_read_on_completed_batch_writes_nothing(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS"))
    surface.frozen = True
    surface.batch_complete = True
    state = RunState()
    state.remember(ProcessingOutcome(OutcomeKind.APPROVED, "CHICKEN THIGH BONELESS", 1, 1))

    outcome = make_processor().process(state)

    assert outcome.kind == OutcomeKind.BATCH_COMPLETE
    assert sink.records == []


def test_duplicate_read_resolved_by_forced_navigation(surface, sink, make_processor) -> None:
    _open(surface, FakeItem("CHICKEN THIGH BONELESS"), FakeItem("PORK BELLY"), FakeItem("BEEF SHORT RIB"))
    state = RunState()
    state.remember(ProcessingOutcome(OutcomeKind.APPROVED, "CHICKEN THIGH BONELESS", 1, 3))

    outcome = make_processor().process(state)

    assert outcome.kind == OutcomeKind.APPROVED
    assert outcome.description == "PORK BELLY"
    assert [r.item for r in sink.records] == ["PORK BELLY"]
    assert len(surface.called("force_advance")) == 1

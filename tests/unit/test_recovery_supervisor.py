from __future__ import annotations

import dataclasses
from typing import Callable, List, Optional

import pytest

from catalog_reconciler.application.errors import (
    RunCancelledError,
    SessionUnavailableError,
    StopReason,
    TransientSessionError,
    UiSurfaceError,
)
from catalog_reconciler.application.navigator import StepResult
from catalog_reconciler.application.supervisor import RecoverySupervisor
from catalog_reconciler.domain.review.model import ViewKind
from catalog_reconciler.domain.review.outcome import OutcomeKind, ProcessingOutcome, RunState
from fakes import FakeItem, make_ctx, no_sleep

Step = Callable[[RunState], StepResult]


def approve(run_state: RunState) -> StepResult:
    run_state.record(ProcessingOutcome(OutcomeKind.APPROVED, "PORK BELLY", 1, 5))
    return StepResult.CONTINUE


def stuck(run_state: RunState) -> StepResult:
    run_state.record(ProcessingOutcome(OutcomeKind.STUCK, "PORK BELLY", 1, 5))
    return StepResult.CONTINUE


def finish(run_state: RunState) -> StepResult:
    return StepResult.FINISHED


def raises(error: Exception) -> Step:
    def _step(run_state: RunState) -> StepResult:
        raise error

    return _step


class ScriptedNavigator:
    """Runs scripted steps in order; repeats the last one when the script runs out."""

    def __init__(self, steps: List[Step], has_items: bool = True) -> None:
        self.steps = list(steps)
        self.has_items = has_items
        self.step_calls = 0

    def open_review_queue(self, run_state: RunState) -> bool:
        return self.has_items

    def step(self, run_state: RunState) -> StepResult:
        self.step_calls += 1
        current = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        return current(run_state)


def _supervisor(
    session,
    navigator,
    console,
    settings,
    limit: int = 500,
    dry_run: bool = False,
    cancellation_check: Optional[Callable[[], bool]] = None,
) -> RecoverySupervisor:
    return RecoverySupervisor(
        session,
        navigator,
        console,
        settings,
        make_ctx(limit=limit, dry_run=dry_run),
        cancellation_check=cancellation_check,
        sleep=no_sleep,
    )


def test_empty_queue_completes_without_prompt(session, console, settings) -> None:
    navigator = ScriptedNavigator([finish], has_items=False)

    reason = _supervisor(session, navigator, console, settings).run(RunState())

    assert reason == StopReason.COMPLETED
    assert console.prompts == []
    assert navigator.step_calls == 0


def test_live_run_asks_for_confirmation(session, console, settings) -> None:
    _supervisor(session, ScriptedNavigator([finish]), console, settings).run(RunState())
    assert len(console.prompts) == 1
    assert console.prompts[0].startswith("LIVE MODE")


def test_dry_run_does_not_ask_for_confirmation(session, console, settings) -> None:
    _supervisor(session, ScriptedNavigator([finish]), console, settings, dry_run=True).run(RunState())
    assert console.prompts == []


def test_stops_at_item_limit(session, console, settings) -> None:
    navigator = ScriptedNavigator([approve])
    state = RunState()

    reason = _supervisor(session, navigator, console, settings, limit=2).run(state)

    assert reason == StopReason.LIMIT_REACHED
    assert state.processed == 2
    assert navigator.step_calls == 2


def test_stops_after_consecutive_stuck_cap(session, console, settings) -> None:
    navigator = ScriptedNavigator([stuck])
    state = RunState()

    reason = _supervisor(session, navigator, console, settings).run(state)

    assert reason == StopReason.STUCK_CAP
    assert reason.is_fatal is True
    assert state.stuck == settings.max_consecutive_stuck


def test_stops_after_consecutive_error_cap(session, console, settings, surface) -> None:
    surface.batches = [[FakeItem("PORK BELLY")]]
    navigator = ScriptedNavigator([raises(RuntimeError("selector exploded"))])
    state = RunState()

    reason = _supervisor(session, navigator, console, settings).run(state)

    assert reason == StopReason.ERROR_CAP
    assert navigator.step_calls == settings.max_consecutive_errors
    assert state.consecutive_errors == settings.max_consecutive_errors
    # A screenshot for every error that did not trip the breaker
    assert len(surface.called("capture_screenshot")) == settings.max_consecutive_errors - 1


def test_error_then_success_keeps_running(session, console, settings) -> None:
    navigator = ScriptedNavigator([raises(RuntimeError("flaky")), approve, finish])
    state = RunState()

    reason = _supervisor(session, navigator, console, settings).run(state)

    assert reason == StopReason.COMPLETED
    assert state.approved == 1


def test_transient_failure_reacquires_session(session, provider, console, settings, surface) -> None:
    navigator = ScriptedNavigator([raises(TransientSessionError("Frame was detached")), approve, finish])
    state = RunState(consecutive_stuck=1, last_seen=("PORK BELLY", 1))

    reason = _supervisor(session, navigator, console, settings).run(state)

    assert reason == StopReason.COMPLETED
    assert provider.reacquired == 1
    assert session.generation == 1
    assert state.approved == 1
    assert state.consecutive_errors == 0
    assert surface.called("inspect_view")


def test_recovery_from_list_view_opens_first_pending_item(session, console, settings, surface) -> None:
    surface.batches = [[FakeItem("PORK BELLY")]]
    surface.view = ViewKind.ITEM_LIST
    navigator = ScriptedNavigator([raises(TransientSessionError("Target closed")), finish])

    _supervisor(session, navigator, console, settings).run(RunState())

    assert surface.called("open_first_pending_item")
    assert surface.called("apply_pending_filter") == []


def test_recovery_from_unknown_view_reapplies_filter(session, console, settings, surface) -> None:
    surface.batches = [[FakeItem("PORK BELLY")]]
    surface.view = ViewKind.UNKNOWN
    navigator = ScriptedNavigator([raises(TransientSessionError("Target closed")), finish])

    _supervisor(session, navigator, console, settings).run(RunState())

    assert surface.called("apply_pending_filter")
    assert surface.called("open_first_pending_item")


def test_recovery_with_nothing_pending_completes(session, console, settings, surface) -> None:
    surface.view = ViewKind.ITEM_LIST
    navigator = ScriptedNavigator([raises(TransientSessionError("Target closed")), approve])

    reason = _supervisor(session, navigator, console, settings).run(RunState())

    assert reason == StopReason.COMPLETED
    assert navigator.step_calls == 1


def test_failed_reorientation_counts_as_error(session, console, settings, surface) -> None:
    def broken_view() -> ViewKind:
        raise UiSurfaceError("page is blank")

    surface.inspect_view = broken_view
    settings = dataclasses.replace(settings, max_consecutive_errors=2)
    navigator = ScriptedNavigator([raises(TransientSessionError("Frame was detached"))])

    reason = _supervisor(session, navigator, console, settings).run(RunState())

    assert reason == StopReason.ERROR_CAP
    assert navigator.step_calls == 2


def test_reload_on_every_step_hits_error_cap(session, provider, console, settings) -> None:
    navigator = ScriptedNavigator([raises(TransientSessionError("Execution context was destroyed"))])

    reason = _supervisor(session, navigator, console, settings).run(RunState())

    assert reason == StopReason.ERROR_CAP
    assert navigator.step_calls == settings.max_consecutive_errors
    assert provider.reacquired == settings.max_consecutive_errors - 1


def test_successful_step_resets_reload_count(session, provider, console, settings) -> None:
    reload = raises(TransientSessionError("Frame was detached"))
    settings = dataclasses.replace(settings, max_consecutive_errors=3)
    navigator = ScriptedNavigator([reload, reload, approve, reload, reload, finish])
    state = RunState()

    reason = _supervisor(session, navigator, console, settings).run(state)

    assert reason == StopReason.COMPLETED
    assert state.approved == 1
    assert provider.reacquired == 4


def test_unrecoverable_session_stops_run(session, provider, console, settings) -> None:
    provider.unavailable = True
    navigator = ScriptedNavigator([raises(TransientSessionError("Browser has been closed"))])

    reason = _supervisor(session, navigator, console, settings).run(RunState())

    assert reason == StopReason.SESSION_LOST
    assert reason.is_fatal is True


def test_session_unavailable_during_step_stops_run(session, console, settings) -> None:
    navigator = ScriptedNavigator([raises(SessionUnavailableError("no pages left"))])

    reason = _supervisor(session, navigator, console, settings).run(RunState())

    assert reason == StopReason.SESSION_LOST


def test_cancellation_is_checked_between_items(session, console, settings) -> None:
    calls = iter([False, True])
    navigator = ScriptedNavigator([approve])

    with pytest.raises(RunCancelledError):
        _supervisor(session, navigator, console, settings, cancellation_check=lambda: next(calls)).run(RunState())

    assert navigator.step_calls == 1

"""Unit tests for the Playwright UI surface against a mocked page."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from playwright.sync_api import Error as PlaywrightError

from catalog_reconciler.adapters.browser.playwright_surface import (
    PlaywrightUiSurface,
    _parse_position,
    is_transient_message,
    playwright_errors,
    translate_error,
)
from catalog_reconciler.application.errors import TransientSessionError, UiSurfaceError
from catalog_reconciler.domain.review.model import FieldKind


def _page_data(**overrides) -> dict:
    data = {
        "description": "PORK BELLY",
        "vendor": "Sysco",
        "category": "Food Purchases",
        "ledger_code": "5000",
        "unit": "lb",
        "unit_kind": "combobox",
        "inventory_unit": "",
        "inventory_unit_kind": "select",
        "size": "",
        "has_product": True,
        "is_approved": False,
        "still_to_review": True,
        "validation_message": "",
        "page_text": "Invoice item 3 of 12\nVendor: Sysco",
    }
    data.update(overrides)
    return data


@pytest.fixture
def page() -> Mock:
    return Mock()


@pytest.fixture
def ui(page: Mock, settings) -> PlaywrightUiSurface:
    return PlaywrightUiSurface(page, settings)


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Frame was detached", True),
        ("Execution context was destroyed, most likely because of a navigation", True),
        ("Target page, context or browser has been closed", True),
        ("Timeout 15000ms exceeded", False),
    ],
)
def test_is_transient_message(message: str, expected: bool) -> None:
    assert is_transient_message(message) is expected


def test_translate_error() -> None:
    assert isinstance(translate_error(PlaywrightError("Frame was detached")), TransientSessionError)
    translated = translate_error(PlaywrightError("Timeout 15000ms exceeded"))
    assert type(translated) is UiSurfaceError


def test_playwright_errors_context_translates() -> None:
    with pytest.raises(TransientSessionError):
        with playwright_errors():
            raise PlaywrightError("Execution context was destroyed")


def test_parse_position() -> None:
    assert _parse_position("foo Invoice item 3 of 12 bar") == (3, 12)
    assert _parse_position("no counter here") == (0, 0)


def test_read_item_builds_snapshot(ui: PlaywrightUiSurface, page: Mock) -> None:
    page.evaluate.return_value = _page_data()

    snapshot = ui.read_item()

    assert snapshot.description == "PORK BELLY"
    assert snapshot.unit_kind == FieldKind.COMBOBOX
    assert snapshot.inventory_unit_kind == FieldKind.SELECT
    assert snapshot.size_missing is True
    assert (snapshot.position, snapshot.total) == (3, 12)


def test_read_item_translates_detached_frame(ui: PlaywrightUiSurface, page: Mock) -> None:
    page.evaluate.side_effect = PlaywrightError("Frame was detached")

    with pytest.raises(TransientSessionError):
        ui.read_item()


def test_probe_approval_detects_validation_banner(ui: PlaywrightUiSurface, page: Mock) -> None:
    page.evaluate.return_value = _page_data(
        page_text="Invoice item 3 of 12\nAll (*) fields must be added prior to approving"
    )

    probe = ui.probe_approval()

    assert probe.description == "PORK BELLY"
    assert probe.validation_banner is True
    assert probe.still_to_review is True


def test_wait_for_change_sees_new_description(ui: PlaywrightUiSurface, page: Mock) -> None:
    page.evaluate.return_value = _page_data(description="BEEF SHORT RIB")

    assert ui.wait_for_change("PORK BELLY", 3, max_wait_ms=1000) is True


def test_wait_for_change_sees_new_position(ui: PlaywrightUiSurface, page: Mock) -> None:
    page.evaluate.return_value = _page_data(page_text="Invoice item 4 of 12")

    assert ui.wait_for_change("PORK BELLY", 3, max_wait_ms=1000) is True


def test_wait_for_change_propagates_transient_errors(ui: PlaywrightUiSurface, page: Mock) -> None:
    page.evaluate.side_effect = PlaywrightError("Target page, context or browser has been closed")

    with pytest.raises(TransientSessionError):
        ui.wait_for_change("PORK BELLY", 3, max_wait_ms=1000)


def test_capture_screenshot_writes_to_output_dir(ui: PlaywrightUiSurface, page: Mock, settings) -> None:
    path = ui.capture_screenshot("error-1")

    assert path.endswith("error-1.png")
    assert path.startswith(settings.output_dir)
    page.screenshot.assert_called_once_with(path=path)


def test_dismiss_dialogs_clicks_acknowledge_button(ui: PlaywrightUiSurface, page: Mock) -> None:
    page.get_by_role.return_value.count.return_value = 1

    ui.dismiss_dialogs()

    name = page.get_by_role.call_args.kwargs["name"]
    for text in ("OK", "Close", "Dismiss", "Got it"):
        assert name.match(text)
    assert not name.match("Save")
    page.get_by_role.return_value.first.click.assert_called_once()
    page.keyboard.press.assert_not_called()


def test_dismiss_dialogs_falls_back_to_escape(ui: PlaywrightUiSurface, page: Mock) -> None:
    page.get_by_role.return_value.count.return_value = 0

    ui.dismiss_dialogs()

    page.keyboard.press.assert_called_once_with("Escape")

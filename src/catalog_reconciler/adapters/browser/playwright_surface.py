from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from catalog_reconciler.application.errors import TransientSessionError, UiSurfaceError
from catalog_reconciler.application.polling import poll_until
from catalog_reconciler.domain.classification.model import UnitClass
from catalog_reconciler.domain.review.model import ApprovalProbe, FieldId, FieldKind, ItemSnapshot, ViewKind
from catalog_reconciler.ports.ui_surface import UiSurface
from catalog_reconciler.settings import Settings

logger = logging.getLogger(__name__)

# Playwright messages that mean the page went away under us
_TRANSIENT_MARKERS = ("detached", "destroyed", "closed")

_VALIDATION_PHRASES = (
    "fields must be added prior",
    "required fields",
    "(*) fields must",
    "must be added prior to approving",
)

_OPTION_SELECTOR = 'li[role="option"], div[role="option"]'
_POSITION_RE = re.compile(r"Invoice item (\d+) of (\d+)")
_DISMISS_BUTTON_RE = re.compile(r"^\s*(ok|close|dismiss|got it)\s*$", re.IGNORECASE)

_COMBOBOX_LABELS = {FieldId.UNIT: "Unit", FieldId.INVENTORY_UNIT: "Inventory unit"}
_SELECT_FIELDS = {FieldId.UNIT: "unit", FieldId.INVENTORY_UNIT: "inventory"}

_READ_ITEM_JS = """
() => {
  const combos = Array.from(document.querySelectorAll('button[role="combobox"]'));
  const attr = (b) => ((b.getAttribute('hint') || '') + ' ' + (b.getAttribute('aria-label') || '')).toLowerCase();
  const exact = (b, name) => (b.getAttribute('hint') || '').toLowerCase() === name
    || (b.getAttribute('aria-label') || '').toLowerCase() === name;
  const category = combos.find(b => attr(b).includes('category'));
  const unitCombo = combos.find(b => exact(b, 'unit'));
  const invCombo = combos.find(b => attr(b).includes('inventory'));

  let unitSelect = null, invSelect = null;
  for (const sel of document.querySelectorAll('select')) {
    const key = ((sel.id || '') + ' ' + (sel.name || '')).toLowerCase();
    if (key.includes('inventory') || key.includes('inv_unit') || key.includes('invunit')) invSelect = sel;
    else if (key.includes('unit')) unitSelect = sel;
  }
  const selected = (sel) => sel ? (sel.options[sel.selectedIndex]?.text || sel.value || '') : '';

  const sizeInput = document.getElementById('size') || document.querySelector('input[name="size"]');
  const spans = Array.from(document.querySelectorAll('span'));
  const checkWork = Array.from(document.querySelectorAll('p, span, div'))
    .find(el => el.textContent.includes('Check your work'));
  const vendor = document.body.innerText.match(/Vendor:\\s*(.+)/);
  const desc = document.getElementById('item_description');
  const gl = document.getElementById('gl_code');

  return {
    description: desc ? desc.value : '',
    vendor: vendor ? vendor[1].trim() : '',
    category: category ? category.textContent.trim() : '',
    ledger_code: gl ? gl.value : '',
    unit: unitCombo ? unitCombo.textContent.trim() : selected(unitSelect),
    unit_kind: unitCombo ? 'combobox' : (unitSelect ? 'select' : 'none'),
    inventory_unit: invCombo ? invCombo.textContent.trim() : selected(invSelect),
    inventory_unit_kind: invCombo ? 'combobox' : (invSelect ? 'select' : 'none'),
    size: sizeInput ? sizeInput.value : '',
    has_product: !!spans.find(s => s.textContent.trim() === 'View product'),
    is_approved: !!spans.find(s => s.textContent.includes('APPROVED')),
    still_to_review: !!spans.find(s => s.textContent.trim() === 'TO REVIEW'),
    validation_message: checkWork ? checkWork.textContent.trim() : '',
    page_text: document.body.innerText,
  };
}
"""

_SET_INPUT_JS = """
([selector, value]) => {
  const input = document.querySelector(selector);
  if (!input) return false;
  const setter = Object.getOwnPropertyDescriptor(window.HTMLInputElement.prototype, 'value').set;
  setter.call(input, value);
  for (const name of ['input', 'change', 'blur']) input.dispatchEvent(new Event(name, { bubbles: true }));
  return true;
}
"""

_SET_SELECT_JS = """
([field, value]) => {
  for (const sel of document.querySelectorAll('select')) {
    const key = ((sel.id || '') + ' ' + (sel.name || '')).toLowerCase();
    const isInventory = key.includes('inventory') || key.includes('inv_unit') || key.includes('invunit');
    if ((field === 'inventory') !== isInventory || !key.includes(field === 'inventory' ? 'inv' : 'unit')) continue;
    const match = Array.from(sel.options).find(o =>
      o.text.toLowerCase() === value.toLowerCase() || o.value.toLowerCase() === value.toLowerCase());
    if (!match) return false;
    sel.value = match.value;
    sel.dispatchEvent(new Event('change', { bubbles: true }));
    sel.dispatchEvent(new Event('input', { bubbles: true }));
    return true;
  }
  return false;
}
"""

_CLICK_FORWARD_JS = """
() => {
  const candidates = Array.from(document.querySelectorAll('button, a, span'));
  let next = candidates.find(a => {
    const label = (a.getAttribute('aria-label') || '').toLowerCase();
    return label.includes('next') || label.includes('forward');
  });
  if (!next) {
    const glyphs = ['›', '→', '>', 'chevron_right', 'navigate_next', 'arrow_forward'];
    next = candidates.find(a => glyphs.includes(a.textContent.trim()));
  }
  if (!next) return false;
  next.click();
  return true;
}
"""

_BATCH_COMPLETE_JS = """
() => {
  const dialogs = document.querySelectorAll('[role="dialog"], .modal, [class*="modal"], [class*="dialog"]');
  for (const d of dialogs) if (d.textContent.includes('Review complete')) return true;
  const lib = Array.from(document.querySelectorAll('button')).find(b => b.textContent.includes('View item library'));
  return !!lib && document.body.innerText.includes('Review complete');
}
"""


def is_transient_message(message: str) -> bool:
    lower = (message or "").lower()
    return any(marker in lower for marker in _TRANSIENT_MARKERS)


def translate_error(exc: PlaywrightError) -> UiSurfaceError:
    """Map a Playwright failure to the reconciler's error taxonomy."""
    message = str(exc)
    if is_transient_message(message):
        return TransientSessionError(message)
    return UiSurfaceError(message)


@contextmanager
def playwright_errors() -> Iterator[None]:
    try:
        yield
    except PlaywrightError as e:
        raise translate_error(e) from e


def _parse_position(page_text: str) -> tuple[int, int]:
    match = _POSITION_RE.search(page_text or "")
    if not match:
        return 0, 0
    return int(match.group(1)), int(match.group(2))


class PlaywrightUiSurface(UiSurface):
    """UI surface over one Playwright page. Element lookup fallbacks live only here."""

    def __init__(self, page: Page, settings: Settings) -> None:
        self.page = page
        self.settings = settings

    def _pause(self, ms: int) -> None:
        self.page.wait_for_timeout(ms)

    def _click_button(self, *names: str) -> bool:
        for name in names:
            button = self.page.get_by_role("button", name=name, exact=True)
            if button.count() > 0:
                button.first.click()
                return True
        return False

    def _click_option(self, value: str, exact_first: bool = True) -> bool:
        options = self.page.locator(_OPTION_SELECTOR)
        texts = [t.strip() for t in options.all_text_contents()]
        wanted = value.lower()
        index: Optional[int] = None
        if exact_first:
            index = next((i for i, t in enumerate(texts) if t.lower() == wanted), None)
        if index is None:
            index = next((i for i, t in enumerate(texts) if wanted in t.lower()), None)
        if index is None:
            logger.info(f"Option {value!r} not found. Available: {', '.join(texts[:10])}")
            return False
        options.nth(index).click()
        return True

    def _combobox(self, label: str, exact: bool = False):
        op = "=" if exact else "*="
        return self.page.locator(
            f'button[role="combobox"][aria-label{op}"{label}" i], button[role="combobox"][hint{op}"{label}" i]'
        )

    def _evaluate(self, script: str, arg: Any = None) -> Any:
        with playwright_errors():
            if arg is None:
                return self.page.evaluate(script)
            return self.page.evaluate(script, arg)

    # Item detail view

    def read_item(self) -> ItemSnapshot:
        data = self._evaluate(_READ_ITEM_JS)
        position, total = _parse_position(data["page_text"])
        return ItemSnapshot(
            description=data["description"],
            vendor=data["vendor"],
            category=data["category"],
            ledger_code=data["ledger_code"],
            unit=data["unit"],
            unit_kind=FieldKind(data["unit_kind"]),
            inventory_unit=data["inventory_unit"],
            inventory_unit_kind=FieldKind(data["inventory_unit_kind"]),
            size=data["size"],
            has_product=data["has_product"],
            is_approved=data["is_approved"],
            position=position,
            total=total,
            validation_message=data["validation_message"],
        )

    def set_field(self, field_id: FieldId, value: str, kind: FieldKind = FieldKind.NONE) -> bool:
        if field_id == FieldId.SIZE:
            found = self._evaluate(_SET_INPUT_JS, ['#size, input[name="size"]', value])
            if found:
                self._pause(500)
            return bool(found)

        exact = field_id == FieldId.UNIT
        with playwright_errors():
            if kind in (FieldKind.COMBOBOX, FieldKind.NONE) and self._set_combobox(
                _COMBOBOX_LABELS[field_id], value, exact=exact
            ):
                return True
            if kind in (FieldKind.SELECT, FieldKind.NONE):
                if self.page.evaluate(_SET_SELECT_JS, [_SELECT_FIELDS[field_id], value]):
                    self._pause(500)
                    return True
        return False

    def _set_combobox(self, label: str, value: str, exact: bool = False) -> bool:
        combo = self._combobox(label, exact=exact)
        if combo.count() == 0:
            logger.info(f"Combobox {label!r} not found")
            return False
        combo.first.click()
        self._pause(800)
        if self._click_option(value):
            self._pause(self.settings.delay_after_action_ms)
            return True
        self.page.keyboard.press("Escape")
        self._pause(300)
        return False

    def set_category(self, name: str) -> bool:
        with playwright_errors():
            combo = self._combobox("category")
            if combo.count() == 0:
                logger.info("Category dropdown not found")
                return False
            combo.first.click()
            self._pause(800)
            search = self.page.locator('input[placeholder="Search..."]')
            if search.count() > 0:
                search.first.type(name[:4], delay=50)
                self._pause(800)
            if self._click_option(name, exact_first=False):
                self._pause(self.settings.delay_after_action_ms)
                return True
            self.page.keyboard.press("Escape")
            self._pause(300)
            return False

    def set_ledger_code(self, value: str) -> bool:
        found = self._evaluate(_SET_INPUT_JS, ["#gl_code", value])
        if found:
            self._pause(500)
        return bool(found)

    def assign_or_create_product(self, name: str, unit_class_hint: UnitClass) -> bool:
        with playwright_errors():
            product_input = self.page.locator('input[placeholder="Start typing to select a product"]')
            if product_input.count() == 0:
                return False
            product_input.first.fill("")
            product_input.first.type(name, delay=50)
            self._pause(1500)

            existing = self.page.locator(_OPTION_SELECTOR)
            if existing.count() > 0:
                existing.first.click()
                self._pause(self.settings.delay_after_action_ms)
                return True

            add = self.page.locator("button", has_text=f'Add "{name}"')
            if add.count() == 0:
                add = self.page.locator("button", has_text='Add "')
            if add.count() == 0:
                return False
            add.first.click()
            self._pause(1500)

            unit_input = self.page.locator('input[placeholder="Select product unit"]')
            if unit_input.count() > 0 and unit_input.first.input_value().lower() != unit_class_hint.value.lower():
                unit_input.first.fill("")
                unit_input.first.type(unit_class_hint.value, delay=50)
                self._pause(500)
                self._click_option(unit_class_hint.value)
                self._pause(500)

            if self._click_button("Add Product"):
                self._pause(self.settings.delay_after_action_ms)
                return True
            return False

    def invoke_approve(self) -> bool:
        with playwright_errors():
            return self._click_button("Approve")

    def probe_approval(self) -> ApprovalProbe:
        data = self._evaluate(_READ_ITEM_JS)
        text = data["page_text"]
        return ApprovalProbe(
            description=data["description"],
            validation_banner=any(phrase in text for phrase in _VALIDATION_PHRASES),
            still_to_review=data["still_to_review"],
        )

    def confirm_assign_products(self) -> None:
        with playwright_errors():
            if self._click_button("Yes", "No"):
                self._pause(1000)

    def dismiss_dialogs(self) -> None:
        with playwright_errors():
            button = self.page.get_by_role("button", name=_DISMISS_BUTTON_RE)
            if button.count() > 0:
                button.first.click()
            else:
                self.page.keyboard.press("Escape")
            self._pause(500)

    def invoke_save(self) -> bool:
        with playwright_errors():
            saved = self._click_button("Save Changes", "Save")
        if saved:
            self._pause(self.settings.navigation_settle_ms)
        else:
            logger.info("Save button not found")
        return saved

    # Navigation

    def force_advance(self) -> bool:
        with playwright_errors():
            if self.page.evaluate(_CLICK_FORWARD_JS):
                logger.info("Clicked next arrow")
                self._pause(self.settings.navigation_settle_ms)
                return True
            logger.info("Next arrow not found; trying keyboard navigation")
            self.page.keyboard.press("ArrowRight")
            self._pause(1000)
            return False

    def wait_for_change(self, prior_description: str, prior_position: int, max_wait_ms: int) -> bool:
        def advanced() -> bool:
            try:
                data = self.page.evaluate(_READ_ITEM_JS)
                if data["description"] and data["description"] != prior_description:
                    return True
                position, _ = _parse_position(data["page_text"])
                if position > 0 and position != prior_position:
                    return True
                return bool(self.page.evaluate(_BATCH_COMPLETE_JS))
            except PlaywrightError as e:
                if is_transient_message(str(e)):
                    raise translate_error(e) from e
                logger.debug(f"Check error while waiting for navigation: {str(e)[:60]}")
                return False

        changed = poll_until(
            advanced,
            timeout_ms=max_wait_ms,
            interval_ms=self.settings.poll_interval_ms,
            sleep=lambda seconds: self._pause(int(seconds * 1000)),
        )
        if not changed:
            logger.info(f"Timed out waiting for the page to advance ({max_wait_ms}ms)")
        return changed

    def detect_batch_complete(self) -> bool:
        return bool(self._evaluate(_BATCH_COMPLETE_JS))

    def dismiss_batch_complete(self) -> None:
        with playwright_errors():
            button = self.page.locator("button", has_text="View item library")
            if button.count() > 0:
                button.first.click()
                self._pause(3000)

    def apply_pending_filter(self) -> None:
        with playwright_errors():
            self.page.goto(self.settings.item_library_url, wait_until="networkidle")
            self._pause(3000)
            more = self.page.locator("button", has_text="More Filters")
            if more.count() == 0:
                logger.info("Filter button not found; showing the unfiltered list")
                return
            more.first.click()
            self._pause(1000)
            self.page.get_by_text("To Review", exact=True).first.click()
            self._pause(500)
            self.page.locator("button", has_text="Apply").first.click()
            self._pause(2000)

    def open_first_pending_item(self) -> bool:
        with playwright_errors():
            row = self.page.locator("tr", has_text="TO REVIEW")
            if row.count() == 0:
                return False
            row.first.click()
            self._pause(3000)
            return True

    def inspect_view(self) -> ViewKind:
        with playwright_errors():
            if self.page.locator("#item_description").count() > 0:
                return ViewKind.ITEM_DETAIL
            if "Invoice item" in self.page.inner_text("body"):
                return ViewKind.ITEM_DETAIL
            if self.page.locator("tr").count() > 3:
                return ViewKind.ITEM_LIST
            return ViewKind.UNKNOWN

    # Item library search

    def open_item_library(self) -> None:
        with playwright_errors():
            if "ProductCatalog" in self.page.url:
                return
            self.page.goto(self.settings.item_library_url, wait_until="networkidle")
            self._pause(3000)

    def search_and_open_item(self, description: str) -> bool:
        with playwright_errors():
            search = self.page.locator('input[placeholder*="Search"]')
            if search.count() == 0:
                logger.info("Search input not found")
                return False
            search.first.fill("")
            search.first.type(description[: self.settings.reapply_search_prefix_chars].strip(), delay=30)
            self._pause(2000)

            row = self.page.locator("tr").filter(
                has=self.page.locator("td", has_text=re.compile(rf"^\s*{re.escape(description)}\s*$"))
            )
            if row.count() == 0:
                row = self.page.locator("tr", has_text=description[:15])
            if row.count() == 0:
                return False
            row.first.click()
            self._pause(3000)
            return True

    def clear_search(self) -> None:
        with playwright_errors():
            search = self.page.locator('input[placeholder*="Search"]')
            if search.count() > 0:
                search.first.fill("")
                self._pause(500)

    def close_item_detail(self) -> None:
        with playwright_errors():
            close = self.page.locator(
                'button[aria-label="Close" i], button[aria-label*="back" i], a[aria-label*="back" i]'
            )
            if close.count() > 0:
                close.first.click()
                self._pause(2000)
                return
            if self._click_button("×", "✕", "close"):
                self._pause(2000)
                return
            self.page.goto(self.settings.item_library_url, wait_until="networkidle")
            self._pause(3000)

    def capture_screenshot(self, label: str) -> Optional[str]:
        path = Path(self.settings.output_dir) / f"{label}.png"
        with playwright_errors():
            self.page.screenshot(path=str(path))
        return str(path)

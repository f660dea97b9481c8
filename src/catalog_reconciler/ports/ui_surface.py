from __future__ import annotations

from typing import Optional, Protocol

from catalog_reconciler.domain.classification.model import UnitClass
from catalog_reconciler.domain.review.model import ApprovalProbe, FieldId, FieldKind, ItemSnapshot, ViewKind


class UiSurface(Protocol):
    """
    Semantic operations against the live item-review session.

    Every call may block until the action completes or its timeout elapses.
    Session reloads and detached views surface as TransientSessionError;
    how a control is located is the implementation's business.
    """

    # Item detail view
    def read_item(self) -> ItemSnapshot: ...

    def set_field(self, field_id: FieldId, value: str, kind: FieldKind = FieldKind.NONE) -> bool: ...

    def set_category(self, name: str) -> bool: ...

    def set_ledger_code(self, value: str) -> bool: ...

    def assign_or_create_product(self, name: str, unit_class_hint: UnitClass) -> bool: ...

    def invoke_approve(self) -> bool: ...

    def probe_approval(self) -> ApprovalProbe: ...

    def confirm_assign_products(self) -> None: ...

    def dismiss_dialogs(self) -> None: ...

    def invoke_save(self) -> bool: ...

    # Navigation
    def force_advance(self) -> bool: ...

    def wait_for_change(self, prior_description: str, prior_position: int, max_wait_ms: int) -> bool: ...

    def detect_batch_complete(self) -> bool: ...

    def dismiss_batch_complete(self) -> None: ...

    def apply_pending_filter(self) -> None: ...

    def open_first_pending_item(self) -> bool: ...

    def inspect_view(self) -> ViewKind: ...

    # Item library search
    def open_item_library(self) -> None: ...

    def search_and_open_item(self, description: str) -> bool: ...

    def clear_search(self) -> None: ...

    def close_item_detail(self) -> None: ...

    def capture_screenshot(self, label: str) -> Optional[str]: ...

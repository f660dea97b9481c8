from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

_UNSET_MARKER = "select"


class FieldKind(str, Enum):
    """How a dropdown field is rendered on the item page."""

    COMBOBOX = "combobox"
    SELECT = "select"
    NONE = "none"


class FieldId(str, Enum):
    SIZE = "size"
    UNIT = "unit"
    INVENTORY_UNIT = "inventory_unit"


class ViewKind(str, Enum):
    ITEM_DETAIL = "item_detail"
    ITEM_LIST = "item_list"
    UNKNOWN = "unknown"


def _is_unset(value: str) -> bool:
    value = (value or "").strip()
    return not value or _UNSET_MARKER in value.lower()


@dataclass(frozen=True)
class ItemSnapshot:
    """One read of the item page. Never mutated; a fresh read replaces it."""

    description: str
    vendor: str = ""
    category: str = ""
    ledger_code: str = ""
    unit: str = ""
    unit_kind: FieldKind = FieldKind.NONE
    inventory_unit: str = ""
    inventory_unit_kind: FieldKind = FieldKind.NONE
    size: str = ""
    has_product: bool = False
    is_approved: bool = False
    position: int = 0
    total: int = 0
    validation_message: str = ""

    @property
    def key(self) -> Tuple[str, int]:
        return (self.description, self.position)

    @property
    def size_missing(self) -> bool:
        return not (self.size or "").strip()

    @property
    def unit_missing(self) -> bool:
        return _is_unset(self.unit)

    @property
    def inventory_unit_missing(self) -> bool:
        return _is_unset(self.inventory_unit)

    @property
    def is_last_in_batch(self) -> bool:
        return self.position > 0 and self.total > 0 and self.position >= self.total


@dataclass(frozen=True)
class ApprovalProbe:
    """Page state read right after the approve action."""

    description: str
    validation_banner: bool
    still_to_review: bool = True


class ApprovalVerdict(str, Enum):
    ADVANCED = "advanced"
    BLOCKED = "blocked"
    PENDING = "pending"


def disambiguate_approval(prior_description: str, probe: ApprovalProbe) -> ApprovalVerdict:
    """
    Decide what an approve click did from the page read right after it.

    The banner region is reused for the next item while the page is mid
    transition, so a changed description means success and the banner is
    ignored. Only an unchanged description with a banner means the approval
    was blocked.
    """
    if probe.description != prior_description:
        return ApprovalVerdict.ADVANCED
    if probe.validation_banner:
        return ApprovalVerdict.BLOCKED
    return ApprovalVerdict.PENDING

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union


class UnitClass(str, Enum):
    VOLUME = "Volume"
    EACH = "Each"
    WEIGHT = "Weight"


@dataclass(frozen=True)
class VendorRule:
    """Case-insensitive exact vendor match."""

    vendor: str
    category: str
    ledger_code: Optional[str] = None

    def matches(self, vendor: str) -> bool:
        return (vendor or "").strip().lower() == self.vendor.strip().lower()


@dataclass(frozen=True)
class KeywordRule:
    """
    Fires on the first keyword found as a substring of the description.

    Keywords listed in `whole_words` only match as a whole word (an optional
    plural "s" allowed), so "lid" hits "CUP LIDS" but not "SOLID".
    """

    category: str
    keywords: Tuple[str, ...]
    ledger_code: Optional[str] = None
    whole_words: FrozenSet[str] = frozenset()

    def _hit(self, keyword: str, lower: str) -> bool:
        keyword = keyword.lower()
        if keyword in self.whole_words:
            return re.search(rf"\b{re.escape(keyword)}s?\b", lower) is not None
        return keyword in lower

    def first_match(self, description: str) -> Optional[str]:
        lower = (description or "").lower()
        for keyword in self.keywords:
            if self._hit(keyword, lower):
                return keyword
        return None


Rule = Union[VendorRule, KeywordRule]


@dataclass(frozen=True)
class LedgerFix:
    """Unconditional correction: items in `category` on `from_ledger_code` move to `to_ledger_code`."""

    category: str
    from_ledger_code: str
    to_ledger_code: str

    def applies_to(self, category: str, ledger_code: str) -> bool:
        return (
            (category or "").strip().lower() == self.category.strip().lower()
            and (ledger_code or "").strip().lower() == self.from_ledger_code.strip().lower()
        )


@dataclass(frozen=True)
class RuleMatch:
    rule: Rule
    match_reason: str
    matched_keyword: Optional[str] = None

    @property
    def category(self) -> str:
        return self.rule.category

    @property
    def ledger_code(self) -> Optional[str]:
        return self.rule.ledger_code


@dataclass(frozen=True)
class RuleTables:
    """The decision inputs; every list is evaluated in declaration order."""

    vendor_rules: Tuple[VendorRule, ...] = ()
    keyword_rules: Tuple[KeywordRule, ...] = ()
    ledger_fixes: Tuple[LedgerFix, ...] = ()
    special_vendors: Tuple[str, ...] = ()
    special_keywords: Tuple[str, ...] = ()
    excluded_keywords: Tuple[str, ...] = ()
    volume_keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ClassificationResult:
    target_category: str
    # None means "leave the ledger code as it is"
    target_ledger_code: Optional[str]
    normalized_product_name: str
    unit_class: UnitClass
    match_reason: str
    matched_keyword: Optional[str] = None
    is_reclassified: bool = False
    special_vendor_flag: bool = False
    excluded_flag: bool = False
    notes: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def audit_note(self) -> str:
        return "; ".join(self.notes)

from __future__ import annotations

from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.classification.evaluator import (
    classify,
    is_excluded_category,
    is_special_vendor_flag,
    match_rule,
    normalized_product_name,
    unit_class,
)
from catalog_reconciler.domain.classification.model import (
    ClassificationResult,
    KeywordRule,
    LedgerFix,
    RuleMatch,
    RuleTables,
    UnitClass,
    VendorRule,
)
from catalog_reconciler.domain.classification import rules

__all__ = [
    "ClassificationConfig",
    "ClassificationResult",
    "KeywordRule",
    "LedgerFix",
    "RuleMatch",
    "RuleTables",
    "UnitClass",
    "VendorRule",
    "classify",
    "is_excluded_category",
    "is_special_vendor_flag",
    "match_rule",
    "normalized_product_name",
    "rules",
    "unit_class",
]

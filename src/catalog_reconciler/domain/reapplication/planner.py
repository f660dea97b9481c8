from __future__ import annotations

from typing import Iterable, List, Optional

from catalog_reconciler.domain.classification import rules
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.classification.evaluator import match_rule
from catalog_reconciler.domain.reapplication.model import Correction, HistoricalItem


def _same(left: str, right: str) -> bool:
    return (left or "").strip().lower() == (right or "").strip().lower()


def plan_correction(item: HistoricalItem, config: ClassificationConfig) -> Optional[Correction]:
    """
    Re-derive category and ledger code for a previously approved item.

    Rule precedence matches live classification (vendor rules, then keyword
    rules, first match wins) and only applies to items still sitting in the
    default category. Ledger fixes apply to every approved item whether or
    not a rule fired, checked against the category and ledger code the item
    will have after the rule is applied.
    """
    if not item.is_approved:
        return None

    tables = config.tables
    target_category: Optional[str] = None
    target_ledger_code: Optional[str] = None
    matched_keyword: Optional[str] = None
    reasons: List[str] = []

    if _same(item.category, config.default_category):
        match = match_rule(item.description, item.vendor, tables)
        if match is not None and not _same(match.category, item.category):
            target_category = match.category
            if match.ledger_code is not None and not _same(match.ledger_code, item.ledger_code):
                target_ledger_code = match.ledger_code
            matched_keyword = match.matched_keyword
            reasons.append(match.match_reason)

    effective_category = target_category or item.category
    effective_ledger_code = target_ledger_code or item.ledger_code
    for fix in tables.ledger_fixes:
        if fix.applies_to(effective_category, effective_ledger_code):
            target_ledger_code = fix.to_ledger_code
            reasons.append(
                f"{rules.LEDGER_FIX_PREFIX}:{fix.category.lower()}:{fix.from_ledger_code}->{fix.to_ledger_code}"
            )
            break

    if target_category is None and target_ledger_code is None:
        return None
    return Correction(
        item=item,
        target_category=target_category,
        target_ledger_code=target_ledger_code,
        reason="; ".join(reasons),
        matched_keyword=matched_keyword,
    )


def plan_corrections(items: Iterable[HistoricalItem], config: ClassificationConfig) -> List[Correction]:
    corrections = []
    for item in items:
        correction = plan_correction(item, config)
        if correction is not None:
            corrections.append(correction)
    return corrections

from __future__ import annotations

import re
from typing import Iterable, Optional

from catalog_reconciler.domain.classification import rules
from catalog_reconciler.domain.classification.config import ClassificationConfig
from catalog_reconciler.domain.classification.model import (
    ClassificationResult,
    RuleMatch,
    RuleTables,
    UnitClass,
)
from catalog_reconciler.domain.classification.rules import DEFAULT_TABLES

_PACKAGING_PATTERNS = (
    re.compile(r"\*\*"),
    re.compile(r"\*PACK\s*\d+CT\*", re.IGNORECASE),
    re.compile(r"\d+-?LB", re.IGNORECASE),
    re.compile(r"\d+-?OZ", re.IGNORECASE),
    re.compile(r"\d+-?ML", re.IGNORECASE),
    re.compile(r"\d+-?GAL", re.IGNORECASE),
    re.compile(r"\d+-?CT", re.IGNORECASE),
    re.compile(r"\b(?:FF|FRZ|IQF|RAW|EACH|BKAN|ARZRSVS)\b", re.IGNORECASE),
    re.compile(r"JF\s*\d+", re.IGNORECASE),
    re.compile(r"\d{3,}"),
)
_WHITESPACE = re.compile(r"\s+")
_LEADING_NON_ALPHA = re.compile(r"^[^a-z]+")
_TRAILING_NON_ALPHA = re.compile(r"[^a-z]+$")

FALLBACK_NAME_LENGTH = 40


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    lower = (text or "").lower()
    return any(keyword.lower() in lower for keyword in keywords)


def _strip_packaging_once(name: str) -> str:
    for pattern in _PACKAGING_PATTERNS:
        name = pattern.sub("", name)
    name = name.replace("_", " ")
    name = _WHITESPACE.sub(" ", name).strip().lower()
    name = _LEADING_NON_ALPHA.sub("", name)
    return _TRAILING_NON_ALPHA.sub("", name)


def _strip_packaging(name: str) -> str:
    # Removing one token can glue its neighbours into a new one, so run to a fixed point.
    while True:
        stripped = _strip_packaging_once(name)
        if stripped == name:
            return stripped
        name = stripped


def normalized_product_name(description: str) -> str:
    """
    Product name derived from an invoice description.

    Drops pack counts, weight/volume/count suffixes and vendor abbreviations,
    collapses whitespace and underscores, lower-cases and trims non-letters at
    both ends. Falls back to the first 40 characters of the lower-cased
    description when nothing survives. Idempotent.
    """
    description = description or ""
    name = _strip_packaging(description)
    if name:
        return name
    fallback = description.lower()[:FALLBACK_NAME_LENGTH]
    # A truncated fallback can itself expose letters; keep the result a fixed point.
    return _strip_packaging(fallback) or fallback


def unit_class(description: str, tables: RuleTables = DEFAULT_TABLES) -> UnitClass:
    # Volume is checked before non-food, and the order is fixed.
    if _contains_any(description, tables.volume_keywords):
        return UnitClass.VOLUME
    if _contains_any(description, tables.excluded_keywords):
        return UnitClass.EACH
    return UnitClass.WEIGHT


def is_special_vendor_flag(vendor: str, description: str, tables: RuleTables = DEFAULT_TABLES) -> bool:
    """Both the vendor allow-list and the keyword allow-list must hit."""
    return _contains_any(vendor, tables.special_vendors) and _contains_any(description, tables.special_keywords)


def is_excluded_category(description: str, tables: RuleTables = DEFAULT_TABLES) -> bool:
    return _contains_any(description, tables.excluded_keywords)


def match_rule(description: str, vendor: str, tables: RuleTables = DEFAULT_TABLES) -> Optional[RuleMatch]:
    """Vendor rules first, then keyword rules; declaration order breaks ties."""
    for vendor_rule in tables.vendor_rules:
        if vendor_rule.matches(vendor):
            return RuleMatch(
                rule=vendor_rule,
                match_reason=f"{rules.VENDOR_RULE_PREFIX}:{vendor_rule.vendor.lower()}",
            )
    for keyword_rule in tables.keyword_rules:
        keyword = keyword_rule.first_match(description)
        if keyword is not None:
            return RuleMatch(
                rule=keyword_rule,
                match_reason=f"{rules.KEYWORD_RULE_PREFIX}:{keyword_rule.category.lower()}:{keyword}",
                matched_keyword=keyword,
            )
    return None


def classify(description: str, vendor: str, config: Optional[ClassificationConfig] = None) -> ClassificationResult:
    """
    Classify an item from its description and vendor.

    The baseline picks between the default and excluded categories and
    between the default and special ledger codes. A vendor or keyword rule
    hit then overrides the category, and the ledger code when the rule
    carries one. `is_reclassified` is False when no rule fired.
    """
    config = config or ClassificationConfig()
    tables = config.tables
    description = description or ""
    vendor = vendor or ""

    special_flag = is_special_vendor_flag(vendor, description, tables)
    excluded_flag = is_excluded_category(description, tables)

    category = config.excluded_category if excluded_flag else config.default_category
    ledger_code: Optional[str] = config.special_ledger_code if special_flag else config.default_ledger_code
    if special_flag:
        match_reason = rules.RULE_BASELINE_SPECIAL_VENDOR
    elif excluded_flag:
        match_reason = rules.RULE_BASELINE_EXCLUDED
    else:
        match_reason = rules.RULE_BASELINE_DEFAULT

    notes = []
    if special_flag:
        notes.append(rules.NOTE_SPECIAL_VENDOR)
    elif excluded_flag:
        notes.append(rules.NOTE_EXCLUDED)

    match = match_rule(description, vendor, tables)
    matched_keyword = None
    if match is not None:
        category = match.category
        if match.ledger_code is not None:
            ledger_code = match.ledger_code
        match_reason = match.match_reason
        matched_keyword = match.matched_keyword
        notes.append(f"rule: {match.match_reason}")

    return ClassificationResult(
        target_category=category,
        target_ledger_code=ledger_code,
        normalized_product_name=normalized_product_name(description),
        unit_class=unit_class(description, tables),
        match_reason=match_reason,
        matched_keyword=matched_keyword,
        is_reclassified=match is not None,
        special_vendor_flag=special_flag,
        excluded_flag=excluded_flag,
        notes=tuple(notes),
    )

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Optional

import jsonschema

from catalog_reconciler.application.errors import RulesConfigError
from catalog_reconciler.domain.classification.model import KeywordRule, LedgerFix, RuleTables, VendorRule
from catalog_reconciler.domain.classification.rules import DEFAULT_TABLES
from catalog_reconciler.ports.rules_provider import RulesProvider

logger = logging.getLogger(__name__)

_KEYWORD_LIST = {"type": "array", "items": {"type": "string", "minLength": 1}}
_LEDGER_CODE = {"type": ["string", "null"]}

RULES_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Catalog reconciler rule tables",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "vendor_rules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["vendor", "category"],
                "additionalProperties": False,
                "properties": {
                    "vendor": {"type": "string", "minLength": 1},
                    "category": {"type": "string", "minLength": 1},
                    "ledger_code": _LEDGER_CODE,
                },
            },
        },
        "keyword_rules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["category", "keywords"],
                "additionalProperties": False,
                "properties": {
                    "category": {"type": "string", "minLength": 1},
                    "keywords": {**_KEYWORD_LIST, "minItems": 1},
                    "ledger_code": _LEDGER_CODE,
                    "whole_words": _KEYWORD_LIST,
                },
            },
        },
        "ledger_fixes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["category", "from_ledger_code", "to_ledger_code"],
                "additionalProperties": False,
                "properties": {
                    "category": {"type": "string", "minLength": 1},
                    "from_ledger_code": {"type": "string", "minLength": 1},
                    "to_ledger_code": {"type": "string", "minLength": 1},
                },
            },
        },
        "special_vendors": _KEYWORD_LIST,
        "special_keywords": _KEYWORD_LIST,
        "excluded_keywords": _KEYWORD_LIST,
        "volume_keywords": _KEYWORD_LIST,
    },
}


def validate_rules(data: Any) -> None:
    try:
        jsonschema.validate(instance=data, schema=RULES_SCHEMA)
    except jsonschema.ValidationError as e:
        raise RulesConfigError(f"Rule file validation failed: {e.message}") from e
    except jsonschema.SchemaError as e:
        raise RulesConfigError(f"Schema error: {e.message}") from e


def tables_from_dict(data: dict[str, Any], base: RuleTables = DEFAULT_TABLES) -> RuleTables:
    """Build rule tables from validated JSON. Tables absent from `data` keep their `base` value."""
    overrides: dict[str, Any] = {}
    if "vendor_rules" in data:
        overrides["vendor_rules"] = tuple(
            VendorRule(vendor=r["vendor"], category=r["category"], ledger_code=r.get("ledger_code"))
            for r in data["vendor_rules"]
        )
    if "keyword_rules" in data:
        overrides["keyword_rules"] = tuple(
            KeywordRule(
                category=r["category"],
                keywords=tuple(r["keywords"]),
                ledger_code=r.get("ledger_code"),
                whole_words=frozenset(w.lower() for w in r.get("whole_words", ())),
            )
            for r in data["keyword_rules"]
        )
    if "ledger_fixes" in data:
        overrides["ledger_fixes"] = tuple(
            LedgerFix(
                category=r["category"],
                from_ledger_code=r["from_ledger_code"],
                to_ledger_code=r["to_ledger_code"],
            )
            for r in data["ledger_fixes"]
        )
    for name in ("special_vendors", "special_keywords", "excluded_keywords", "volume_keywords"):
        if name in data:
            overrides[name] = tuple(data[name])
    return dataclasses.replace(base, **overrides)


class JsonRulesProvider(RulesProvider):
    """Returns the built-in rule tables, or tables loaded from a JSON file."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = Path(path) if path else None
        self._tables: Optional[RuleTables] = None

    def get_tables(self) -> RuleTables:
        if self._tables is None:
            self._tables = self._load()
        return self._tables

    def _load(self) -> RuleTables:
        if self.path is None:
            return DEFAULT_TABLES
        if not self.path.exists():
            raise RulesConfigError(f"Rule file not found: {self.path}")
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RulesConfigError(f"Invalid JSON in {self.path}: {e}") from e
        validate_rules(data)
        tables = tables_from_dict(data)
        logger.info(
            f"Loaded rule tables from {self.path}: {len(tables.vendor_rules)} vendor rules, "
            f"{len(tables.keyword_rules)} keyword rules, {len(tables.ledger_fixes)} ledger fixes"
        )
        return tables

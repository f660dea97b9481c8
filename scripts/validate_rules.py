#!/usr/bin/env python3
"""Validation script for rule table JSON files.

Validates the files given on the command line, or every *.json under rules/
when none are given. Exits with error code if any invalid files are found.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

from catalog_reconciler.adapters.config.json_rules_provider import tables_from_dict, validate_rules
from catalog_reconciler.application.errors import RulesConfigError


def find_repo_root() -> Path:
    """Find the repository root by looking for pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").exists():
            return parent
    return Path.cwd()


def validate_rules_file(file_path: Path) -> tuple[bool, str | None]:
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        return False, f"Invalid JSON: {e}"

    try:
        validate_rules(data)
    except RulesConfigError as e:
        return False, str(e)

    tables = tables_from_dict(data)
    categories = [rule.category for rule in tables.keyword_rules]
    duplicates = sorted({c for c in categories if categories.count(c) > 1})
    if duplicates:
        return False, f"Keyword rule categories listed more than once: {', '.join(duplicates)}"
    return True, None


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if args:
        files = [Path(a) for a in args]
    else:
        files = sorted((find_repo_root() / "rules").glob("*.json"))

    if not files:
        print("No rule files found", file=sys.stderr)
        return 1

    errors: list[str] = []
    for file_path in files:
        if not file_path.exists():
            errors.append(f"{file_path}: file not found")
            continue
        valid, error = validate_rules_file(file_path)
        if valid:
            print(f"OK {file_path}")
        else:
            errors.append(f"{file_path}: {error}")

    if errors:
        print("\nValidation errors:", file=sys.stderr)
        for error in errors:
            print(f"  {error}", file=sys.stderr)
        return 1

    print(f"\nAll {len(files)} rule files are valid.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

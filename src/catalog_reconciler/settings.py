from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Settings:
    """Runtime settings sourced from environment variables."""

    log_level: str = "INFO"
    # Session / browser
    login_url: str = "https://app.sa.toasttab.com"
    item_library_url: str = "https://app.sa.toasttab.com/XtraChefManagement/ProductCatalog/ProductCatalog"
    session_host: str = "toasttab.com"
    browser_headless: bool = False
    action_timeout_ms: int = 15000
    # Audit sinks
    output_dir: str = "."
    audit_log_file: str = "audit-log.csv"
    flagged_log_file: str = "flagged-items.csv"
    recat_log_file: str = "recat-log.csv"
    recat_error_file: str = "recat-errors.csv"
    # Classification baselines
    rules_path: Optional[str] = None
    default_ledger_code: str = "5000"
    special_ledger_code: str = "5001"
    default_category: str = "Food Purchases"
    excluded_category: str = "Non-Food Items"
    # Field correction defaults
    default_size: str = "1"
    default_unit: str = "lb"
    # Timing (milliseconds); these only absorb UI latency
    delay_between_items_ms: int = 3000
    delay_after_action_ms: int = 1500
    approval_settle_ms: int = 2000
    navigation_settle_ms: int = 2000
    poll_interval_ms: int = 500
    max_wait_for_navigation_ms: int = 15000
    recovery_delay_ms: int = 5000
    error_backoff_ms: int = 3000
    # Circuit breakers
    max_consecutive_errors: int = 5
    max_consecutive_stuck: int = 3
    stuck_reopen_after: int = 2
    max_items_per_run: int = 500
    # Rule reapplication
    reapply_delay_between_items_ms: int = 2000
    reapply_search_prefix_chars: int = 20

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            login_url=os.getenv("RECONCILER_LOGIN_URL", cls.login_url),
            item_library_url=os.getenv("RECONCILER_ITEM_LIBRARY_URL", cls.item_library_url),
            session_host=os.getenv("RECONCILER_SESSION_HOST", cls.session_host),
            browser_headless=_env_bool("RECONCILER_HEADLESS", cls.browser_headless),
            action_timeout_ms=int(os.getenv("RECONCILER_ACTION_TIMEOUT_MS", cls.action_timeout_ms)),
            output_dir=os.getenv("OUTPUT_DIR", cls.output_dir),
            audit_log_file=os.getenv("AUDIT_LOG_FILE", cls.audit_log_file),
            flagged_log_file=os.getenv("FLAGGED_LOG_FILE", cls.flagged_log_file),
            recat_log_file=os.getenv("RECAT_LOG_FILE", cls.recat_log_file),
            recat_error_file=os.getenv("RECAT_ERROR_FILE", cls.recat_error_file),
            rules_path=os.getenv("RULES_PATH"),
            default_ledger_code=os.getenv("DEFAULT_LEDGER_CODE", cls.default_ledger_code),
            special_ledger_code=os.getenv("SPECIAL_LEDGER_CODE", cls.special_ledger_code),
            default_category=os.getenv("DEFAULT_CATEGORY", cls.default_category),
            excluded_category=os.getenv("EXCLUDED_CATEGORY", cls.excluded_category),
            delay_between_items_ms=int(os.getenv("DELAY_BETWEEN_ITEMS_MS", cls.delay_between_items_ms)),
            max_items_per_run=int(os.getenv("MAX_ITEMS_PER_RUN", cls.max_items_per_run)),
        )


@lru_cache()
def get_settings() -> Settings:
    """Provide a cached settings object."""
    return Settings.from_env()

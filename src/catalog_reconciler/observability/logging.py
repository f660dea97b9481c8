from __future__ import annotations

import logging
import sys
from typing import Optional

from catalog_reconciler.settings import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(correlation_id)s] - %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Fills in correlation_id for records logged outside a run (e.g. by libraries)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


def configure_logging(level: Optional[str] = None) -> None:
    settings = get_settings()
    log_level = (level or settings.log_level).upper()
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())

from __future__ import annotations

import logging
import os
from pathlib import Path

from catalog_reconciler.application.errors import ReconcilerError
from catalog_reconciler.application.run_context import RunContext
from catalog_reconciler.ports.lock_manager import LockManager

logger = logging.getLogger(__name__)


class RunLockedError(ReconcilerError):
    """Another run already holds the lock for this output directory."""


class FileLockManager(LockManager):
    """Single-writer guard: one run per output directory at a time."""

    def __init__(self, lock_path: str | Path) -> None:
        self.lock_path = Path(lock_path)

    def acquire(self, ctx: RunContext) -> None:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            holder = self.lock_path.read_text(encoding="utf-8").strip()
            raise RunLockedError(f"Run lock {self.lock_path} is held by {holder or 'another run'}")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(ctx.correlation_id)
        logger.debug(f"Acquired run lock {self.lock_path}", extra=ctx.log_extra)

    def release(self, ctx: RunContext) -> None:
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            return
        logger.debug(f"Released run lock {self.lock_path}", extra=ctx.log_extra)

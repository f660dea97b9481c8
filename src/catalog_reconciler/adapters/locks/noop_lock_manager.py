from __future__ import annotations

from catalog_reconciler.application.run_context import RunContext
from catalog_reconciler.ports.lock_manager import LockManager


class NoopLockManager(LockManager):
    def acquire(self, ctx: RunContext) -> None:
        return None

    def release(self, ctx: RunContext) -> None:
        return None

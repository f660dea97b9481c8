from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ReapplySourceKind(str, Enum):
    AUDIT = "audit"
    EXPORT = "export"


@dataclass(frozen=True)
class RunContext:
    dry_run: bool
    pause_each: bool
    limit: int
    started_at: datetime
    correlation_id: str
    source: ReapplySourceKind = ReapplySourceKind.AUDIT
    source_path: Optional[str] = None

    @property
    def log_extra(self) -> dict[str, str]:
        return {"correlation_id": self.correlation_id}

    @classmethod
    def from_args(
        cls,
        limit: int,
        dry_run: bool = False,
        pause_each: bool = False,
        source: str = ReapplySourceKind.AUDIT.value,
        source_path: Optional[str] = None,
        started_at: Optional[datetime] = None,
        correlation_id: Optional[str] = None,
    ) -> "RunContext":
        return cls(
            dry_run=dry_run,
            pause_each=pause_each,
            limit=limit,
            started_at=started_at or datetime.now(timezone.utc),
            correlation_id=correlation_id or f"auto-{uuid.uuid4().hex[:8]}",
            source=ReapplySourceKind(source),
            source_path=source_path,
        )

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

EMPTY_POSITION: Tuple[str, int] = ("", 0)


class OutcomeKind(str, Enum):
    APPROVED = "approved"
    FLAGGED = "flagged"
    SKIPPED = "skipped"
    STUCK = "stuck"
    BATCH_COMPLETE = "batch_complete"
    DRY_RUN_PREVIEW = "dry_run"


# Outcomes that count as a processed item
PROCESSED_KINDS = frozenset(
    {OutcomeKind.APPROVED, OutcomeKind.FLAGGED, OutcomeKind.SKIPPED, OutcomeKind.DRY_RUN_PREVIEW}
)


@dataclass(frozen=True)
class ProcessingOutcome:
    kind: OutcomeKind
    description: str
    position: int
    total: int
    vendor: str = ""
    notes: str = ""

    @property
    def is_last_in_batch(self) -> bool:
        return self.position > 0 and self.total > 0 and self.position >= self.total

    @property
    def counts_as_processed(self) -> bool:
        return self.kind in PROCESSED_KINDS


@dataclass
class RunState:
    """Process-lifetime counters. Not persisted; the audit sink is the durable record."""

    processed: int = 0
    approved: int = 0
    flagged: int = 0
    skipped: int = 0
    stuck: int = 0
    dry_run_previewed: int = 0
    consecutive_errors: int = 0
    consecutive_stuck: int = 0
    batches_completed: int = 0
    last_seen: Tuple[str, int] = field(default=EMPTY_POSITION)
    last_outcome: Optional[ProcessingOutcome] = None

    def record(self, outcome: ProcessingOutcome) -> None:
        self.last_outcome = outcome
        if outcome.kind == OutcomeKind.BATCH_COMPLETE:
            self.batches_completed += 1
            self.consecutive_stuck = 0
            return
        if outcome.kind == OutcomeKind.STUCK:
            self.stuck += 1
            self.consecutive_stuck += 1
            return

        self.processed += 1
        self.consecutive_stuck = 0
        if outcome.kind == OutcomeKind.APPROVED:
            self.approved += 1
        elif outcome.kind == OutcomeKind.FLAGGED:
            self.flagged += 1
        elif outcome.kind == OutcomeKind.SKIPPED:
            self.skipped += 1
        elif outcome.kind == OutcomeKind.DRY_RUN_PREVIEW:
            self.dry_run_previewed += 1

    def remember(self, outcome: ProcessingOutcome) -> None:
        self.last_seen = (outcome.description, outcome.position)

    def reset_position(self) -> None:
        """Forget the last-seen pair; positions restart on every batch."""
        self.last_seen = EMPTY_POSITION

    def is_duplicate(self, description: str, position: int) -> bool:
        return bool(description) and (description, position) == self.last_seen

    def check_accounting(self) -> bool:
        return self.approved + self.flagged + self.skipped + self.dry_run_previewed == self.processed

    def as_counts(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "approved": self.approved,
            "flagged": self.flagged,
            "skipped": self.skipped,
            "stuck": self.stuck,
            "dry_run_previewed": self.dry_run_previewed,
            "batches_completed": self.batches_completed,
        }

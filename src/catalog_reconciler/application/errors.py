from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    VALIDATION_BLOCKED = "validation_blocked"
    NOT_FOUND = "not_found"
    STUCK_NAVIGATION = "stuck_navigation"
    TRANSIENT_SESSION = "transient_session"
    FATAL = "fatal"


class StopReason(str, Enum):
    COMPLETED = "completed"
    LIMIT_REACHED = "limit_reached"
    ERROR_CAP = "error_cap"
    STUCK_CAP = "stuck_cap"
    CANCELLED = "cancelled"
    SESSION_LOST = "session_lost"

    @property
    def is_fatal(self) -> bool:
        return self in (StopReason.ERROR_CAP, StopReason.STUCK_CAP, StopReason.SESSION_LOST)


class ReconcilerError(Exception):
    kind: FailureKind = FailureKind.FATAL


class UiSurfaceError(ReconcilerError):
    """A UI Surface operation failed."""


class TransientSessionError(UiSurfaceError):
    """The session reloaded or the view detached mid-action."""

    kind = FailureKind.TRANSIENT_SESSION


class SessionUnavailableError(ReconcilerError):
    """No live session handle could be acquired."""


class RunCancelledError(ReconcilerError):
    pass


class RulesConfigError(ReconcilerError):
    """Raised when a rule table file is missing or fails validation."""


class SourceNotFoundError(ReconcilerError):
    kind = FailureKind.NOT_FOUND

"""Exception types raised by the planner core."""

from __future__ import annotations


class InvalidTimeError(ValueError):
    """A time-of-day string or day offset is outside the accepted range."""


class InvalidEventError(ValueError):
    """An event violates the end-after-start or recurrence contract."""


class DragStateError(RuntimeError):
    """A drag controller was asked for a transition its state does not allow."""


class CommitRejectedError(RuntimeError):
    """The event store refused to persist a rescheduled event."""


class ReschedulePassInProgressError(RuntimeError):
    """A reconciliation pass was started before the previous one finished."""

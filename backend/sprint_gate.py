# sprint_gate.py — Sprint lifecycle (PLANNED -> ACTIVE -> COMPLETED) and board gating
from datetime import datetime, timezone
from typing import Optional, Sequence, TypeVar

from models import SprintStatus

BOARD_NOT_STARTED = "Start the sprint to update board"
BOARD_CLOSED = "Cannot update board after sprint end"


class SprintGateError(Exception):
    """Board mutation attempted while the sprint is not ACTIVE"""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class SprintTransitionError(Exception):
    """Requested sprint status change is not allowed from the current state"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def as_utc(dt: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they were stored as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _status(value) -> SprintStatus:
    return value if isinstance(value, SprintStatus) else SprintStatus(value)


def ensure_board_open(status) -> None:
    """Only ACTIVE sprints accept reorder/move operations."""
    status = _status(status)
    if status == SprintStatus.PLANNED:
        raise SprintGateError("sprint_not_started", BOARD_NOT_STARTED)
    if status == SprintStatus.COMPLETED:
        raise SprintGateError("sprint_ended", BOARD_CLOSED)


def can_start(status, start_date: datetime, end_date: datetime, now: Optional[datetime] = None) -> bool:
    now = as_utc(now or datetime.now(timezone.utc))
    return (
        _status(status) == SprintStatus.PLANNED
        and as_utc(start_date) <= now <= as_utc(end_date)
    )


def can_complete(status) -> bool:
    return _status(status) == SprintStatus.ACTIVE


def transition(current, requested, start_date: datetime, end_date: datetime,
               now: Optional[datetime] = None) -> SprintStatus:
    """Validate a lifecycle change and return the new status"""
    current = _status(current)
    requested = _status(requested)

    if requested == SprintStatus.ACTIVE:
        if current != SprintStatus.PLANNED:
            raise SprintTransitionError(f"Cannot start a sprint that is {current.value}")
        if not can_start(current, start_date, end_date, now):
            raise SprintTransitionError("Sprint can only be started between its start and end dates")
        return requested

    if requested == SprintStatus.COMPLETED:
        if not can_complete(current):
            raise SprintTransitionError("Only an active sprint can be completed")
        return requested

    raise SprintTransitionError(f"Cannot move sprint from {current.value} to {requested.value}")


S = TypeVar("S")


def select_current_sprint(sprints: Sequence[S]) -> Optional[S]:
    """First ACTIVE sprint, else the first sprint in list order, else None"""
    for sprint in sprints:
        if _status(sprint.status) == SprintStatus.ACTIVE:
            return sprint
    return sprints[0] if sprints else None

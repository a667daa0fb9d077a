# workflow.py — Master workflow sequence and issue transition history (track)
"""
The board columns are the members of IssueStatus in declaration order.
Every cross-column move appends the destination status to the issue's
track; nothing ever removes, reorders or deduplicates track entries.
"""
from typing import Iterable, List, Optional, Sequence, Union

from models import IssueStatus

STATUS_SEQUENCE: List[IssueStatus] = list(IssueStatus)

STATUS_NAMES = {
    IssueStatus.TODO: "To Do",
    IssueStatus.PURCHASE: "Purchase",
    IssueStatus.STORE: "Store",
    IssueStatus.BUFFING: "Buffing",
    IssueStatus.PAINTING: "Painting",
    IssueStatus.WINDING: "Winding",
    IssueStatus.ASSEMBLY: "Assembly",
    IssueStatus.PACKING: "Packing",
    IssueStatus.SALES: "Sales",
}

StatusLike = Union[IssueStatus, str]


def as_status(value: StatusLike) -> IssueStatus:
    if isinstance(value, IssueStatus):
        return value
    return IssueStatus(value)


def phase_number(status: StatusLike) -> int:
    """1-based position of a status in the master sequence"""
    return STATUS_SEQUENCE.index(as_status(status)) + 1


def status_rank(status: StatusLike) -> int:
    """Sort key following the workflow order rather than the alphabet"""
    return STATUS_SEQUENCE.index(as_status(status))


def normalize_track(track: Optional[Iterable[StatusLike]]) -> List[str]:
    """Legacy rows may carry NULL; treat that as an empty history."""
    if not track:
        return []
    return [as_status(s).value for s in track]


def append_transition(track: Optional[Iterable[StatusLike]], new_status: StatusLike) -> List[str]:
    """Return a new track with new_status appended. The input is not mutated."""
    return normalize_track(track) + [as_status(new_status).value]


def is_repeat_visit(track: Sequence[StatusLike], index: int) -> bool:
    """True when the entry at index already occurs earlier in the track"""
    entries = normalize_track(track)
    if index < 0 or index >= len(entries):
        raise IndexError(f"track index {index} out of range")
    return entries[index] in entries[:index]


def describe_track(track: Optional[Iterable[StatusLike]]) -> List[dict]:
    entries = normalize_track(track)
    last = len(entries) - 1
    out = []
    for idx, status in enumerate(entries):
        out.append({
            "index": idx,
            "status": status,
            "name": STATUS_NAMES[IssueStatus(status)],
            "phase": phase_number(status),
            "is_repeat": status in entries[:idx],
            "is_current": idx == last,
        })
    return out


def extends_track(old: Optional[Iterable[StatusLike]], new: Optional[Iterable[StatusLike]]) -> bool:
    """True when new keeps every entry of old, in place, as its prefix"""
    old_entries = normalize_track(old)
    new_entries = normalize_track(new)
    return new_entries[:len(old_entries)] == old_entries

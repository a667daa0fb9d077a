# ordering.py — Issue ordering engine
"""
Computes ``order`` values inside a (project, status) partition.

* Creating an issue appends it: max(order) + 1, or 0 for an empty column.
* Reordering within a column renumbers the whole column 0..n-1.
* Moving across columns renumbers both columns 0..n-1 independently and
  appends the destination status to the moved issue's track.

The functions here are pure: they take snapshots of the board and return
the placements to persist. The same rules run in the browser before a
batch is submitted and on the server for the hardened move endpoint.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from workflow import StatusLike, append_transition, as_status, normalize_track


class OrderingError(ValueError):
    """Raised for positions that do not exist in the column being edited"""


@dataclass
class Card:
    """Snapshot of the fields the ordering engine reads"""
    id: str
    status: str
    order: int
    track: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Placement:
    """Target state for one issue after a board gesture"""
    id: str
    status: str
    order: int
    track: List[str]

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "status": self.status, "order": self.order, "track": list(self.track)}


def next_order(current_max: Optional[int]) -> int:
    """Order for a new issue given the column's current maximum (None when empty)"""
    return 0 if current_max is None else current_max + 1


def sort_column(cards: Sequence[Card]) -> List[Card]:
    # sorted() is stable, so equal orders keep their insertion sequence
    return sorted(cards, key=lambda c: c.order)


def column(cards: Sequence[Card], status: StatusLike) -> List[Card]:
    value = as_status(status).value
    return sort_column([c for c in cards if as_status(c.status).value == value])


def renumber(sequence: Sequence[Card]) -> List[Placement]:
    return [
        Placement(id=c.id, status=as_status(c.status).value, order=idx, track=normalize_track(c.track))
        for idx, c in enumerate(sequence)
    ]


def _check_index(index: int, size: int, what: str) -> None:
    if index < 0 or index >= size:
        raise OrderingError(f"{what} index {index} out of range for column of {size}")


def reorder(sequence: Sequence[Card], source_index: int, destination_index: int) -> List[Placement]:
    """Move one card inside a column. Track is left alone."""
    if not sequence:
        return []
    _check_index(source_index, len(sequence), "source")
    if destination_index < 0:
        raise OrderingError(f"destination index {destination_index} is negative")

    items = list(sequence)
    moved = items.pop(source_index)
    items.insert(destination_index, moved)
    return renumber(items)


def move(
    source: Sequence[Card],
    destination: Sequence[Card],
    source_index: int,
    destination_index: int,
    new_status: StatusLike,
) -> List[Placement]:
    """Move one card to another column and record the transition.

    Returns placements for the residual source column followed by the
    destination column.
    """
    _check_index(source_index, len(source), "source")
    if destination_index < 0:
        raise OrderingError(f"destination index {destination_index} is negative")

    status = as_status(new_status).value
    remaining = list(source)
    moved = remaining.pop(source_index)
    if as_status(moved.status).value == status:
        raise OrderingError("move() needs a different destination status, use reorder()")

    moved = replace(moved, status=status, track=append_transition(moved.track, status))
    target = list(destination)
    target.insert(destination_index, moved)
    return renumber(remaining) + renumber(target)


def plan_drag(
    cards: Sequence[Card],
    source_status: StatusLike,
    source_index: int,
    destination_status: StatusLike,
    destination_index: int,
) -> List[Placement]:
    """Apply a drag-and-drop gesture to a board snapshot.

    Indices are positions within the rendered columns. A drop onto the
    original slot yields no placements.
    """
    src = as_status(source_status)
    dst = as_status(destination_status)
    if src == dst and source_index == destination_index:
        return []

    src_column = column(cards, src)
    if src == dst:
        return reorder(src_column, source_index, destination_index)
    return move(src_column, column(cards, dst), source_index, destination_index, dst)


def clamp_index(sequence: Sequence[Card], index: int) -> int:
    """Insertion point for a drop at index; past the end means append"""
    if index < 0:
        raise OrderingError(f"destination index {index} is negative")
    return min(index, len(sequence))


def plan_relocation(
    source: Sequence[Card],
    destination: Sequence[Card],
    card_id: str,
    new_status: StatusLike,
    index: int,
) -> List[Placement]:
    """Server-side derivation of a move from intent (issue, target status, target index).

    ``source`` is the column the card currently sits in and ``destination``
    the target column (ignored for same-status moves). Both come back
    densely renumbered.
    """
    src_column = sort_column(source)
    positions = [pos for pos, c in enumerate(src_column) if c.id == card_id]
    if not positions:
        raise OrderingError(f"issue {card_id} is not in the source column")
    source_index = positions[0]

    status = as_status(new_status)
    if as_status(src_column[source_index].status) == status:
        remaining = src_column[:source_index] + src_column[source_index + 1:]
        return reorder(src_column, source_index, clamp_index(remaining, index))

    dst_column = sort_column([c for c in destination if c.id != card_id])
    return move(src_column, dst_column, source_index, clamp_index(dst_column, index), status)

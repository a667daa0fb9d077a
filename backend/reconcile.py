# reconcile.py — Transactional persistence of board gestures
"""
Two entry points share one writer:

``apply_batch`` stores a client-computed snapshot (id, status, order,
track) as-is. The values are trusted; shape problems are only logged.
An element without a track leaves the stored history untouched.

``relocate_issue`` takes a move intent (issue, target status, target
index), re-reads both affected columns and derives order and track with
the ordering engine before writing.

Either way every write of a gesture commits in one transaction or not
at all. There is no version check, so concurrent gestures are
last-write-wins.
"""
import logging
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import Issue, Project, utcnow
from ordering import Card, Placement, plan_relocation
from sprint_gate import ensure_board_open
from workflow import as_status, extends_track, normalize_track

logger = logging.getLogger("shopfloor.reconcile")


class BatchError(Exception):
    """Reconciliation failure surfaced to the caller as a single error"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class BatchItem(Protocol):
    id: str
    status: object
    order: int
    track: Optional[Sequence[object]]


async def _load_issues(db: AsyncSession, ids: Iterable[str], organization_id: str) -> Dict[str, Issue]:
    ids = list(ids)
    stmt = (
        select(Issue)
        .join(Project, Issue.project_id == Project.id)
        .where(Issue.id.in_(ids), Project.organization_id == organization_id)
        .options(selectinload(Issue.sprint))
    )
    result = await db.execute(stmt)
    found = {issue.id: issue for issue in result.scalars().all()}
    if len(found) != len(set(ids)):
        raise BatchError(404, "Issue not found")
    return found


def _ensure_gate(issues: Iterable[Issue]) -> None:
    for issue in issues:
        if issue.sprint is not None:
            ensure_board_open(issue.sprint.status)


def batch_warnings(issues: Dict[str, Issue], items: Sequence[BatchItem]) -> List[str]:
    """Describe inconsistencies in a submitted batch without rejecting it"""
    warnings = []
    columns = defaultdict(list)

    for item in items:
        issue = issues[item.id]
        new_status = as_status(item.status).value
        old_status = as_status(issue.status).value
        old_track = normalize_track(issue.track)
        new_track = old_track if item.track is None else normalize_track(item.track)

        columns[(issue.project_id, new_status)].append(item.order)

        if not extends_track(old_track, new_track):
            warnings.append(f"issue {item.id}: submitted track rewrites existing history")
        if new_status != old_status:
            if not new_track or new_track[-1] != new_status:
                warnings.append(f"issue {item.id}: moved to {new_status} but track does not end with it")
        elif len(new_track) > len(old_track):
            warnings.append(f"issue {item.id}: track grew without a status change")

    for (project_id, status), orders in columns.items():
        dupes = sorted(o for o, n in Counter(orders).items() if n > 1)
        if dupes:
            warnings.append(f"column {project_id}/{status}: duplicate order values {dupes}")
        if any(o < 0 for o in orders):
            warnings.append(f"column {project_id}/{status}: negative order values")

    return warnings


async def _write(db: AsyncSession, issues: Dict[str, Issue], items: Sequence[BatchItem]) -> None:
    now = utcnow()
    try:
        for item in items:
            issue = issues[item.id]
            issue.status = as_status(item.status)
            issue.order = item.order
            if item.track is not None:
                issue.track = normalize_track(item.track)
            issue.updated_at = now
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Issue order update rolled back ({len(items)} issues): {e}")
        raise BatchError(500, "Error updating issue order") from e


async def apply_batch(db: AsyncSession, items: Sequence[BatchItem], organization_id: str) -> int:
    """Persist a client-computed batch atomically. Returns the number of issues written."""
    if not items:
        return 0

    ids = [item.id for item in items]
    if len(set(ids)) != len(ids):
        raise BatchError(422, "Duplicate issue ids in batch")

    issues = await _load_issues(db, ids, organization_id)
    _ensure_gate(issues.values())

    for warning in batch_warnings(issues, items):
        logger.warning(f"Accepted inconsistent batch: {warning}")

    await _write(db, issues, items)
    logger.info(f"Reconciled {len(items)} issues for org {organization_id}")
    return len(items)


def _card(issue: Issue) -> Card:
    return Card(
        id=issue.id,
        status=as_status(issue.status).value,
        order=issue.order,
        track=normalize_track(issue.track),
    )


async def relocate_issue(
    db: AsyncSession, issue_id: str, organization_id: str, new_status, index: int,
) -> List[Placement]:
    """Move one issue by intent, deriving order and track on the server.

    Only the cards of the moved issue's own sprint (or of the backlog) are
    read and renumbered, so every issue written sits behind the same gate.
    Cards of other sprints in the same columns keep their order.
    """
    issues = await _load_issues(db, [issue_id], organization_id)
    issue = issues[issue_id]
    _ensure_gate([issue])

    old_status = as_status(issue.status)
    new_status = as_status(new_status)

    if issue.sprint_id is None:
        same_sprint = Issue.sprint_id.is_(None)
    else:
        same_sprint = Issue.sprint_id == issue.sprint_id

    stmt = (
        select(Issue)
        .where(
            Issue.project_id == issue.project_id,
            same_sprint,
            or_(Issue.status == old_status, Issue.status == new_status),
        )
        .order_by(Issue.order.asc(), Issue.created_at.asc())
    )
    result = await db.execute(stmt)
    members = {i.id: i for i in result.scalars().all()}
    cards = [_card(i) for i in members.values()]

    source = [c for c in cards if c.status == old_status.value]
    destination = [c for c in cards if c.status == new_status.value]

    placements = plan_relocation(source, destination, issue_id, new_status, index)

    await _write(db, members, placements)
    logger.info(
        f"Relocated issue {issue_id} {old_status.value} -> {new_status.value} "
        f"at {index} ({len(placements)} issues renumbered)"
    )
    return placements

# routers/issues.py — Sprint board issues: create, list, edit, delete, reorder/move
import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select, func, case, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auth import get_current_user, CurrentUser
from database import get_db_session
from models import Issue, IssuePriority, IssueStatus, Project, Sprint, User
from ordering import next_order
from reconcile import apply_batch, relocate_issue
from workflow import STATUS_SEQUENCE, describe_track, normalize_track
from routers.common import get_org_project, ts

logger = logging.getLogger("shopfloor.issues")

router = APIRouter(prefix="/api/v1", tags=["Issues"])

# Workflow order, not alphabetical order
STATUS_RANK = case(
    {status: rank for rank, status in enumerate(STATUS_SEQUENCE)},
    value=Issue.status,
)


# ============================================================
# SCHEMAS
# ============================================================

class IssueCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: IssueStatus = IssueStatus.TODO
    priority: IssuePriority = IssuePriority.MEDIUM
    assignee_id: Optional[str] = None
    sprint_id: Optional[str] = None


class IssueUpdate(BaseModel):
    status: Optional[IssueStatus] = None
    priority: Optional[IssuePriority] = None
    assignee_id: Optional[str] = None
    track: Optional[List[IssueStatus]] = None


class IssueOrderItem(BaseModel):
    id: str
    status: IssueStatus
    order: int
    track: Optional[List[IssueStatus]] = None


class IssueMove(BaseModel):
    status: IssueStatus
    index: int = Field(..., ge=0)


class UserOut(BaseModel):
    id: str
    external_id: str
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class ProjectRef(BaseModel):
    id: str
    name: str
    key: str


class IssueOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: str
    order: int
    priority: str
    assignee_id: Optional[str] = None
    reporter_id: str
    project_id: str
    sprint_id: Optional[str] = None
    track: List[str] = []
    assignee: Optional[UserOut] = None
    reporter: Optional[UserOut] = None
    project: Optional[ProjectRef] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class TrackEntryOut(BaseModel):
    index: int
    status: str
    name: str
    phase: int
    is_repeat: bool
    is_current: bool


class PlacementOut(BaseModel):
    id: str
    status: str
    order: int
    track: List[str]


class MoveResult(BaseModel):
    success: bool = True
    placements: List[PlacementOut] = []


# ============================================================
# HELPERS
# ============================================================


def _enum(value) -> str:
    return value.value if hasattr(value, "value") else value


def _user_out(user: Optional[User]) -> Optional[UserOut]:
    if user is None:
        return None
    return UserOut(
        id=user.id, external_id=user.external_id, email=user.email,
        name=user.name, avatar_url=user.avatar_url,
    )


def _issue_to_out(issue: Issue, with_project: bool = False) -> IssueOut:
    return IssueOut(
        id=issue.id,
        title=issue.title,
        description=issue.description,
        status=_enum(issue.status),
        order=issue.order,
        priority=_enum(issue.priority),
        assignee_id=issue.assignee_id,
        reporter_id=issue.reporter_id,
        project_id=issue.project_id,
        sprint_id=issue.sprint_id,
        track=normalize_track(issue.track),
        assignee=_user_out(issue.assignee),
        reporter=_user_out(issue.reporter),
        project=ProjectRef(id=issue.project.id, name=issue.project.name, key=issue.project.key)
        if with_project and issue.project else None,
        created_at=ts(issue.created_at),
        updated_at=ts(issue.updated_at),
    )


async def _load_issue(issue_id: str, db: AsyncSession) -> Optional[Issue]:
    stmt = (
        select(Issue)
        .where(Issue.id == issue_id)
        .options(
            selectinload(Issue.project),
            selectinload(Issue.assignee),
            selectinload(Issue.reporter),
        )
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _ensure_user_exists(user_id: str, db: AsyncSession) -> None:
    result = await db.execute(select(User.id).where(User.id == user_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Assignee not found")


# ============================================================
# ISSUE ENDPOINTS
# ============================================================

@router.post("/projects/{project_id}/issues", response_model=IssueOut)
async def create_issue(
    project_id: str,
    data: IssueCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Create an issue at the end of its status column"""
    await get_org_project(project_id, user.organization_id, db)

    if data.sprint_id:
        sprint_stmt = select(Sprint.id).where(Sprint.id == data.sprint_id, Sprint.project_id == project_id)
        if (await db.execute(sprint_stmt)).scalar_one_or_none() is None:
            raise HTTPException(status_code=404, detail="Sprint not found")
    if data.assignee_id:
        await _ensure_user_exists(data.assignee_id, db)

    max_stmt = select(func.max(Issue.order)).where(
        Issue.project_id == project_id, Issue.status == data.status
    )
    max_order = (await db.execute(max_stmt)).scalar()

    issue = Issue(
        title=data.title,
        description=data.description,
        status=data.status,
        priority=data.priority,
        project_id=project_id,
        sprint_id=data.sprint_id,
        reporter_id=user.id,
        assignee_id=data.assignee_id or None,
        order=next_order(max_order),
        track=[],
    )
    db.add(issue)
    await db.commit()

    issue = await _load_issue(issue.id, db)
    logger.info(f"Issue {issue.id} created in {project_id}/{data.status.value} at order {issue.order}")
    return _issue_to_out(issue)


@router.get("/sprints/{sprint_id}/issues", response_model=List[IssueOut])
async def get_issues_for_sprint(
    sprint_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """All issues of a sprint, by workflow status then order descending"""
    sprint_stmt = (
        select(Sprint.id)
        .join(Project, Sprint.project_id == Project.id)
        .where(Sprint.id == sprint_id, Project.organization_id == user.organization_id)
    )
    if (await db.execute(sprint_stmt)).scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Sprint not found")

    stmt = (
        select(Issue)
        .where(Issue.sprint_id == sprint_id)
        .options(selectinload(Issue.assignee), selectinload(Issue.reporter))
        .order_by(STATUS_RANK.asc(), Issue.order.desc())
    )
    result = await db.execute(stmt)
    return [_issue_to_out(i) for i in result.scalars().all()]


@router.get("/issues/mine", response_model=List[IssueOut])
async def get_user_issues(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Issues the caller reports or is assigned to, within the current organisation"""
    stmt = (
        select(Issue)
        .join(Project, Issue.project_id == Project.id)
        .where(
            Project.organization_id == user.organization_id,
            or_(Issue.assignee_id == user.id, Issue.reporter_id == user.id),
        )
        .options(
            selectinload(Issue.project),
            selectinload(Issue.assignee),
            selectinload(Issue.reporter),
        )
        .order_by(Issue.updated_at.desc())
    )
    result = await db.execute(stmt)
    return [_issue_to_out(i, with_project=True) for i in result.scalars().all()]


@router.get("/issues/{issue_id}", response_model=IssueOut)
async def get_issue(
    issue_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    issue = await _load_issue(issue_id, db)
    if not issue or issue.project.organization_id != user.organization_id:
        raise HTTPException(status_code=404, detail="Issue not found")
    return _issue_to_out(issue, with_project=True)


@router.get("/issues/{issue_id}/track", response_model=List[TrackEntryOut])
async def get_issue_track(
    issue_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Transition history with phase numbers and repeat-visit flags"""
    issue = await _load_issue(issue_id, db)
    if not issue or issue.project.organization_id != user.organization_id:
        raise HTTPException(status_code=404, detail="Issue not found")
    return [TrackEntryOut(**entry) for entry in describe_track(issue.track)]


@router.patch("/issues/{issue_id}", response_model=IssueOut)
async def update_issue(
    issue_id: str,
    data: IssueUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Edit status, priority, assignee or track from the details view.

    Changing status here does not append to the track; only board moves do.
    Not gated by sprint status.
    """
    issue = await _load_issue(issue_id, db)
    if not issue:
        raise HTTPException(status_code=404, detail="Issue not found")
    if issue.project.organization_id != user.organization_id:
        raise HTTPException(status_code=403, detail="You don't have permission to update this issue")

    fields = data.model_fields_set
    if "assignee_id" in fields and data.assignee_id:
        await _ensure_user_exists(data.assignee_id, db)

    try:
        if "status" in fields and data.status is not None:
            issue.status = data.status
        if "priority" in fields and data.priority is not None:
            issue.priority = data.priority
        if "assignee_id" in fields:
            issue.assignee_id = data.assignee_id or None
        if "track" in fields:
            issue.track = normalize_track(data.track)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Update of issue {issue_id} failed: {e}")
        raise HTTPException(status_code=500, detail="Error updating issue")

    issue = await _load_issue(issue_id, db)
    return _issue_to_out(issue)


@router.delete("/issues/{issue_id}")
async def delete_issue(
    issue_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Delete an issue. Allowed for its reporter or any member of the project's organisation."""
    issue = await _load_issue(issue_id, db)
    if not issue:
        raise HTTPException(status_code=404, detail="Issue not found")

    is_reporter = issue.reporter_id == user.id
    is_member = issue.project.organization_id == user.organization_id
    if not is_reporter and not is_member:
        raise HTTPException(status_code=403, detail="You don't have permission to delete this issue")

    await db.delete(issue)
    await db.commit()
    logger.info(f"Issue {issue_id} deleted by {user.id}")
    return {"success": True}


@router.post("/issues/order")
async def update_issue_order(
    items: List[IssueOrderItem],
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Persist the board state computed by the client after a drag-and-drop, atomically"""
    await apply_batch(db, items, user.organization_id)
    return {"success": True}


@router.post("/issues/{issue_id}/move", response_model=MoveResult)
async def move_issue(
    issue_id: str,
    data: IssueMove,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Move an issue by intent; order and track are derived on the server"""
    placements = await relocate_issue(db, issue_id, user.organization_id, data.status, data.index)
    return MoveResult(placements=[PlacementOut(**p.to_dict()) for p in placements])

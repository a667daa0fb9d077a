# routers/sprints.py — Sprint creation and lifecycle (PLANNED -> ACTIVE -> COMPLETED)
import logging
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from models import Project, Sprint, SprintStatus
from sprint_gate import as_utc, can_complete, can_start, select_current_sprint, transition
from routers.common import get_org_project, ts

logger = logging.getLogger("shopfloor.sprints")

router = APIRouter(prefix="/api/v1", tags=["Sprints"])


# ============================================================
# SCHEMAS
# ============================================================

class SprintCreate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def check_dates(self):
        if as_utc(self.end_date) < as_utc(self.start_date):
            raise ValueError("end_date must not be before start_date")
        return self


class SprintStatusUpdate(BaseModel):
    status: SprintStatus


class SprintOut(BaseModel):
    id: str
    name: str
    start_date: str
    end_date: str
    status: str
    project_id: str
    can_start: bool = False
    can_complete: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def _sprint_to_out(s: Sprint) -> SprintOut:
    return SprintOut(
        id=s.id,
        name=s.name,
        start_date=ts(as_utc(s.start_date)),
        end_date=ts(as_utc(s.end_date)),
        status=s.status.value if isinstance(s.status, SprintStatus) else s.status,
        project_id=s.project_id,
        can_start=can_start(s.status, s.start_date, s.end_date),
        can_complete=can_complete(s.status),
        created_at=ts(s.created_at),
        updated_at=ts(s.updated_at),
    )


async def _list_sprints(project_id: str, db: AsyncSession) -> List[Sprint]:
    stmt = select(Sprint).where(Sprint.project_id == project_id).order_by(Sprint.created_at.asc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ============================================================
# SPRINT ENDPOINTS
# ============================================================

@router.post("/projects/{project_id}/sprints", response_model=SprintOut)
async def create_sprint(
    project_id: str,
    data: SprintCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Plan a new sprint. Default name is <PROJECT KEY>-<n>."""
    project = await get_org_project(project_id, user.organization_id, db)

    name = data.name
    if not name:
        count_stmt = select(func.count(Sprint.id)).where(Sprint.project_id == project_id)
        count = (await db.execute(count_stmt)).scalar() or 0
        name = f"{project.key}-{count + 1}"

    sprint = Sprint(
        name=name,
        start_date=as_utc(data.start_date),
        end_date=as_utc(data.end_date),
        status=SprintStatus.PLANNED,
        project_id=project_id,
    )
    db.add(sprint)
    await db.commit()
    await db.refresh(sprint)

    logger.info(f"Sprint {sprint.name} planned for project {project.key}")
    return _sprint_to_out(sprint)


@router.get("/projects/{project_id}/sprints", response_model=List[SprintOut])
async def list_sprints(
    project_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await get_org_project(project_id, user.organization_id, db)
    return [_sprint_to_out(s) for s in await _list_sprints(project_id, db)]


@router.get("/projects/{project_id}/sprints/current", response_model=SprintOut)
async def get_current_sprint(
    project_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """The sprint a board opens on: first ACTIVE, else the first one planned"""
    await get_org_project(project_id, user.organization_id, db)
    current = select_current_sprint(await _list_sprints(project_id, db))
    if current is None:
        raise HTTPException(status_code=404, detail="Sprint not found")
    return _sprint_to_out(current)


@router.patch("/sprints/{sprint_id}/status", response_model=SprintOut)
async def update_sprint_status(
    sprint_id: str,
    data: SprintStatusUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Start or complete a sprint"""
    stmt = (
        select(Sprint)
        .join(Project, Sprint.project_id == Project.id)
        .where(Sprint.id == sprint_id, Project.organization_id == user.organization_id)
    )
    sprint = (await db.execute(stmt)).scalar_one_or_none()
    if not sprint:
        raise HTTPException(status_code=404, detail="Sprint not found")

    old_status = sprint.status
    sprint.status = transition(old_status, data.status, sprint.start_date, sprint.end_date)
    await db.commit()
    await db.refresh(sprint)

    logger.info(f"Sprint {sprint_id} {SprintStatus(old_status).value} -> {sprint.status.value}")
    return _sprint_to_out(sprint)

# routers/projects.py — Organisation projects
import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, require_org_admin, CurrentUser
from database import get_db_session
from models import Project
from routers.common import get_org_project, ts

logger = logging.getLogger("shopfloor.projects")

router = APIRouter(prefix="/api/v1/projects", tags=["Projects"])


# ============================================================
# SCHEMAS
# ============================================================

class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    key: str = Field(..., min_length=2, max_length=10)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        v = v.upper()
        if not v.isalnum():
            raise ValueError("Project key must be letters and digits only")
        return v


class ProjectOut(BaseModel):
    id: str
    name: str
    key: str
    description: Optional[str] = None
    organization_id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def _project_to_out(p: Project) -> ProjectOut:
    return ProjectOut(
        id=p.id, name=p.name, key=p.key, description=p.description,
        organization_id=p.organization_id,
        created_at=ts(p.created_at), updated_at=ts(p.updated_at),
    )


# ============================================================
# PROJECT ENDPOINTS
# ============================================================

@router.post("", response_model=ProjectOut)
async def create_project(
    data: ProjectCreate,
    user: CurrentUser = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a project in the caller's organisation (admins only)"""
    dupe_stmt = select(Project.id).where(
        Project.organization_id == user.organization_id, Project.key == data.key
    )
    if (await db.execute(dupe_stmt)).scalar_one_or_none():
        raise HTTPException(status_code=409, detail=f"Project key {data.key} already exists")

    project = Project(
        name=data.name,
        key=data.key,
        description=data.description,
        organization_id=user.organization_id,
    )
    db.add(project)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail=f"Project key {data.key} already exists")
    await db.refresh(project)

    logger.info(f"Project {project.key} created in org {user.organization_id}")
    return _project_to_out(project)


@router.get("", response_model=List[ProjectOut])
async def list_projects(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    stmt = (
        select(Project)
        .where(Project.organization_id == user.organization_id)
        .order_by(Project.created_at.desc())
    )
    result = await db.execute(stmt)
    return [_project_to_out(p) for p in result.scalars().all()]


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(
    project_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    project = await get_org_project(project_id, user.organization_id, db)
    return _project_to_out(project)


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    user: CurrentUser = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db_session),
):
    """Delete a project together with its sprints and issues (admins only)"""
    project = await get_org_project(project_id, user.organization_id, db)

    await db.delete(project)
    await db.commit()
    logger.info(f"Project {project_id} deleted by {user.id}")
    return {"success": True}

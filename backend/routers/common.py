# routers/common.py — Helpers shared by the resource routers
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Project


def ts(dt) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat() if isinstance(dt, datetime) else str(dt)


async def get_org_project(project_id: str, organization_id: str, db: AsyncSession) -> Project:
    """Project by id within the caller's organisation, else 404"""
    stmt = select(Project).where(Project.id == project_id, Project.organization_id == organization_id)
    project = (await db.execute(stmt)).scalar_one_or_none()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project

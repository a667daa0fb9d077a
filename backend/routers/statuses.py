# routers/statuses.py — Board column metadata
from typing import List

from fastapi import APIRouter
from pydantic import BaseModel

from workflow import STATUS_NAMES, STATUS_SEQUENCE, phase_number

router = APIRouter(prefix="/api/v1/workflow", tags=["Workflow"])


class StatusOut(BaseModel):
    key: str
    name: str
    phase: int


@router.get("/statuses", response_model=List[StatusOut])
async def list_statuses():
    """Workflow columns in board order"""
    return [
        StatusOut(key=s.value, name=STATUS_NAMES[s], phase=phase_number(s))
        for s in STATUS_SEQUENCE
    ]

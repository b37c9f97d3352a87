"""Task API routes.

Learn: Tasks are nested under their project for creation and listing,
and addressed directly by id afterwards. Access is always decided on the
parent project (see services/task_service.py).
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.auth.dependencies import get_current_identity
from shareme.auth.jwt import Identity
from shareme.db.engine import get_db
from shareme.schemas.common import ErrorBody
from shareme.schemas.task import TASK_STATUS_PATTERN, TaskCreate, TaskRead, TaskUpdate
from shareme.services.task_service import TaskService

router = APIRouter()

_errors = {
    403: {"model": ErrorBody},
    404: {"model": ErrorBody},
}


def _task_svc(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)


@router.post("/projects/{project_id}/tasks", response_model=TaskRead,
             status_code=201, responses=_errors)
async def create_task(
    project_id: uuid.UUID,
    body: TaskCreate,
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    """Add a task to a project (owner or member)."""
    return await svc.create_task(
        identity,
        project_id,
        title=body.title,
        description=body.description,
        priority=body.priority,
        status=body.status,
        due_date=body.due_date,
        assignee_id=body.assignee_id,
    )


@router.get("/projects/{project_id}/tasks", response_model=list[TaskRead], responses=_errors)
async def list_tasks(
    project_id: uuid.UUID,
    status: Optional[str] = Query(None, pattern=TASK_STATUS_PATTERN),
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    """List a project's tasks, optionally filtered by status."""
    return await svc.list_tasks(identity, project_id, status=status)


@router.get("/tasks/{task_id}", response_model=TaskRead, responses=_errors)
async def get_task(
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    return await svc.get_task(identity, task_id)


@router.patch("/tasks/{task_id}", response_model=TaskRead, responses=_errors)
async def update_task(
    task_id: int,
    body: TaskUpdate,
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    """Partial update (project owner only)."""
    return await svc.update_task(identity, task_id, **body.model_dump(exclude_none=True))


@router.delete("/tasks/{task_id}", responses=_errors)
async def delete_task(
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    await svc.delete_task(identity, task_id)
    return {"deleted": True}

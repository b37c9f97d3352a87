"""Project API routes.

Learn: Routes translate HTTP to ProjectService calls; the service loads
the project and consults the authorization policy. Identity comes from
the gate dependency, already verified by the time a handler runs.

- GET    /projects                 → projects I own or belong to
- POST   /projects                 → create (I become the owner)
- GET    /projects/stats           → counts across my projects
- GET    /projects/:id             → owner or member
- PUT    /projects/:id             → owner only
- DELETE /projects/:id             → owner only
- POST   /projects/:id/documents   → owner or member (multipart)
- GET    /projects/:id/documents   → owner or member
"""

import uuid

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.api.deps import get_storage
from shareme.auth.dependencies import get_current_identity
from shareme.auth.jwt import Identity
from shareme.db.engine import get_db
from shareme.schemas.common import ErrorBody
from shareme.schemas.project import (
    DocumentRead,
    ProjectCreate,
    ProjectRead,
    ProjectStats,
    ProjectUpdate,
)
from shareme.services.project_service import ProjectService
from shareme.services.storage import DocumentStorage

router = APIRouter(prefix="/projects")

_errors = {
    403: {"model": ErrorBody},
    404: {"model": ErrorBody},
}


def _project_svc(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


async def _read(svc: ProjectService, project) -> ProjectRead:
    counts = await svc.task_counts([project.id])
    return ProjectRead.build(project, counts[project.id])


@router.get("", response_model=list[ProjectRead])
async def list_projects(
    identity: Identity = Depends(get_current_identity),
    svc: ProjectService = Depends(_project_svc),
):
    """List projects the caller owns or is a member of, newest first."""
    projects = await svc.list_for(identity)
    counts = await svc.task_counts([p.id for p in projects])
    return [ProjectRead.build(p, counts[p.id]) for p in projects]


@router.post("", response_model=ProjectRead, status_code=201,
             responses={400: {"model": ErrorBody}})
async def create_project(
    body: ProjectCreate,
    identity: Identity = Depends(get_current_identity),
    svc: ProjectService = Depends(_project_svc),
):
    """Create a project owned by the caller."""
    project = await svc.create(
        identity,
        name=body.name,
        description=body.description,
        priority=body.priority,
        deadline=body.deadline,
        member_emails=body.member_emails,
    )
    return await _read(svc, project)


@router.get("/stats", response_model=ProjectStats)
async def project_stats(
    identity: Identity = Depends(get_current_identity),
    svc: ProjectService = Depends(_project_svc),
):
    """Project and task counts over every project the caller can read."""
    return ProjectStats(**await svc.stats(identity))


@router.get("/{project_id}", response_model=ProjectRead, responses=_errors)
async def get_project(
    project_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    svc: ProjectService = Depends(_project_svc),
):
    project = await svc.get_readable(identity, project_id)
    return await _read(svc, project)


@router.put("/{project_id}", response_model=ProjectRead, responses=_errors)
async def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    identity: Identity = Depends(get_current_identity),
    svc: ProjectService = Depends(_project_svc),
):
    """Update a project (owner only). Only provided fields change."""
    project = await svc.update(
        identity,
        project_id,
        name=body.name,
        description=body.description,
        priority=body.priority,
        status=body.status,
        deadline=body.deadline,
        member_emails=body.member_emails,
    )
    return await _read(svc, project)


@router.delete("/{project_id}", responses=_errors)
async def delete_project(
    project_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    svc: ProjectService = Depends(_project_svc),
    storage: DocumentStorage = Depends(get_storage),
):
    """Delete a project with its tasks, notes and documents (owner only)."""
    await svc.delete(identity, project_id, storage=storage)
    return {"deleted": True}


# ─── Documents ──────────────────────────────────────────


@router.post(
    "/{project_id}/documents",
    response_model=list[DocumentRead],
    status_code=201,
    responses={**_errors, 413: {"model": ErrorBody}},
)
async def upload_documents(
    project_id: uuid.UUID,
    files: list[UploadFile] = File(...),
    identity: Identity = Depends(get_current_identity),
    svc: ProjectService = Depends(_project_svc),
    storage: DocumentStorage = Depends(get_storage),
):
    """Attach one or more files to a project (owner or member)."""
    return await svc.add_documents(identity, project_id, files, storage)


@router.get("/{project_id}/documents", response_model=list[DocumentRead], responses=_errors)
async def list_documents(
    project_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    svc: ProjectService = Depends(_project_svc),
):
    return await svc.list_documents(identity, project_id)

"""Project service — CRUD, membership, stats and documents.

Learn: Every method that touches an existing project follows the same
three steps:

    1. load the project (404 if it does not exist)
    2. build a ProjectAccess snapshot and ask exactly one policy predicate
    3. do the work, or raise AuthorizationError (403)

Reads and uploads are for the owner and members; updates and deletes are
for the owner only.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog
from fastapi import UploadFile
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.auth.jwt import Identity
from shareme.auth.policy import (
    ProjectAccess,
    can_mutate,
    can_read,
    can_upload_document,
    require,
)
from shareme.db.models import (
    Project,
    ProjectDocument,
    Task,
    TaskNote,
    User,
    project_members,
)
from shareme.errors import NotFoundError, ValidationError
from shareme.services.storage import DocumentStorage
from shareme.services.user_service import UserService

logger = structlog.get_logger()


@dataclass
class TaskCounts:
    total: int = 0
    completed: int = 0
    in_progress: int = 0


def parse_id(raw, what: str = "Project") -> uuid.UUID:
    try:
        return raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw))
    except ValueError:
        raise NotFoundError(f"{what} not found")


def readable_by(user_id: uuid.UUID):
    """SQL filter: projects the user owns or is a member of."""
    member_of = select(project_members.c.project_id).where(
        project_members.c.user_id == user_id
    )
    return or_(Project.owner_id == user_id, Project.id.in_(member_of))


class ProjectService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Loading + access ────────────────────────────────

    async def load(self, project_id) -> Project:
        project = await self.db.get(Project, parse_id(project_id))
        if project is None:
            raise NotFoundError("Project not found")
        return project

    async def get_readable(self, identity: Identity, project_id) -> Project:
        project = await self.load(project_id)
        require(can_read(identity, ProjectAccess.of(project)), "Access denied to project")
        return project

    async def get_mutable(self, identity: Identity, project_id, action: str) -> Project:
        project = await self.load(project_id)
        require(
            can_mutate(identity, ProjectAccess.of(project)),
            f"Only the project owner can {action} the project",
        )
        return project

    # ─── CRUD ────────────────────────────────────────────

    async def list_for(self, identity: Identity) -> list[Project]:
        q = (
            select(Project)
            .where(readable_by(uuid.UUID(identity.user_id)))
            .order_by(Project.created_at.desc())
        )
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def create(
        self,
        identity: Identity,
        name: str,
        description: str = "",
        priority: str = "MEDIUM",
        deadline: Optional[datetime] = None,
        member_emails: Optional[list[str]] = None,
    ) -> Project:
        owner = await UserService(self.db).get(identity.user_id)
        project = Project(
            name=name.strip(),
            description=description or "",
            priority=priority,
            deadline=deadline,
            owner_id=owner.id,
        )
        project.members = await self._resolve_members(owner.id, member_emails)
        self.db.add(project)
        await self.db.commit()
        await self.db.refresh(project)
        logger.info(
            "project.created",
            project_id=str(project.id),
            owner_id=identity.user_id,
            members=len(project.members),
        )
        return project

    async def update(
        self,
        identity: Identity,
        project_id,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        status: Optional[str] = None,
        deadline: Optional[datetime] = None,
        member_emails: Optional[list[str]] = None,
    ) -> Project:
        project = await self.get_mutable(identity, project_id, "update")
        if name is not None:
            project.name = name.strip()
        if description is not None:
            project.description = description
        if priority is not None:
            project.priority = priority
        if status is not None:
            project.status = status
        if deadline is not None:
            project.deadline = deadline
        if member_emails is not None:
            project.members = await self._resolve_members(project.owner_id, member_emails)
        await self.db.commit()
        await self.db.refresh(project)
        logger.info("project.updated", project_id=str(project.id))
        return project

    async def delete(
        self, identity: Identity, project_id, storage: Optional[DocumentStorage] = None
    ) -> None:
        project = await self.get_mutable(identity, project_id, "delete")
        docs = await self.db.execute(
            select(ProjectDocument.file_path).where(ProjectDocument.project_id == project.id)
        )
        files = list(docs.scalars().all())

        task_ids = select(Task.id).where(Task.project_id == project.id)
        await self.db.execute(
            delete(TaskNote)
            .where(TaskNote.task_id.in_(task_ids))
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(
            delete(Task)
            .where(Task.project_id == project.id)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(
            delete(ProjectDocument)
            .where(ProjectDocument.project_id == project.id)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.delete(project)
        await self.db.commit()

        if storage is not None:
            for file_name in files:
                storage.delete(file_name)
        logger.info("project.deleted", project_id=str(project_id))

    async def _resolve_members(
        self, owner_id: uuid.UUID, emails: Optional[list[str]]
    ) -> list[User]:
        """Users for the given emails, owner excluded (owner access is implicit)."""
        if not emails:
            return []
        users = await UserService(self.db).get_many_by_email(emails)
        if not users:
            raise ValidationError("No valid users found for the provided email addresses")
        return [u for u in users if u.id != owner_id]

    # ─── Stats ───────────────────────────────────────────

    async def task_counts(self, project_ids: list[uuid.UUID]) -> dict[uuid.UUID, TaskCounts]:
        counts = {pid: TaskCounts() for pid in project_ids}
        if not project_ids:
            return counts
        q = (
            select(Task.project_id, Task.status, func.count(Task.id))
            .where(Task.project_id.in_(project_ids))
            .group_by(Task.project_id, Task.status)
        )
        for pid, status, n in (await self.db.execute(q)).all():
            c = counts[pid]
            c.total += n
            if status == "COMPLETED":
                c.completed += n
            elif status == "IN_PROGRESS":
                c.in_progress += n
        return counts

    async def stats(self, identity: Identity) -> dict:
        uid = uuid.UUID(identity.user_id)
        readable = select(Project.id).where(readable_by(uid))
        total_projects = await self.db.scalar(
            select(func.count()).select_from(readable.subquery())
        )
        q = (
            select(Task.status, func.count(Task.id))
            .where(Task.project_id.in_(readable))
            .group_by(Task.status)
        )
        by_status = dict((await self.db.execute(q)).all())
        return {
            "total_projects": total_projects or 0,
            "completed_tasks": by_status.get("COMPLETED", 0),
            "in_progress_tasks": by_status.get("IN_PROGRESS", 0),
        }

    # ─── Documents ───────────────────────────────────────

    async def add_documents(
        self,
        identity: Identity,
        project_id,
        uploads: list[UploadFile],
        storage: DocumentStorage,
    ) -> list[ProjectDocument]:
        project = await self.load(project_id)
        require(
            can_upload_document(identity, ProjectAccess.of(project)),
            "Access denied to project",
        )
        if not uploads:
            raise ValidationError("At least one file is required")

        # A request stores all of its files or none of them
        docs = []
        try:
            for upload in uploads:
                stored = await storage.save(upload)
                docs.append(
                    ProjectDocument(
                        project_id=project.id,
                        name=upload.filename,
                        file_path=stored.file_name,
                        content_type=upload.content_type,
                        size_bytes=stored.size_bytes,
                        uploaded_by=uuid.UUID(identity.user_id),
                    )
                )
            self.db.add_all(docs)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            for doc in docs:
                storage.delete(doc.file_path)
            logger.warning(
                "project.documents_discarded", project_id=str(project.id), count=len(docs)
            )
            raise
        logger.info("project.documents_added", project_id=str(project.id), count=len(docs))
        return docs

    async def list_documents(self, identity: Identity, project_id) -> list[ProjectDocument]:
        project = await self.get_readable(identity, project_id)
        q = (
            select(ProjectDocument)
            .where(ProjectDocument.project_id == project.id)
            .order_by(ProjectDocument.uploaded_at)
        )
        return list((await self.db.execute(q)).scalars().all())

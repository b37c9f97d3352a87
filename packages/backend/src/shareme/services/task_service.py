"""Task service — tasks inside projects.

Learn: Tasks have no access rules of their own. Each operation resolves
the parent project and asks the same policy the project endpoints use:

    create / list / get   → can_read   (owner or member: members may append)
    update / delete       → can_mutate (project owner only)

Status values: TODO → IN_PROGRESS → COMPLETED (any order is accepted;
the tracker does not enforce a workflow).
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.auth.jwt import Identity
from shareme.auth.policy import ProjectAccess, can_mutate, can_read, require
from shareme.db.models import Task, TaskNote
from shareme.errors import NotFoundError, ValidationError
from shareme.services.project_service import ProjectService

logger = structlog.get_logger()


class TaskService:
    """Business logic for task CRUD."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.projects = ProjectService(db)

    async def load(self, task_id: int) -> Task:
        task = await self.db.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def is_accessible(self, identity: Identity, task_id: int) -> bool:
        """True if the task exists and its project is readable by the caller."""
        task = await self.db.get(Task, task_id)
        return task is not None and can_read(identity, ProjectAccess.of(task.project))

    # ─── Create / read ───────────────────────────────────

    async def create_task(
        self,
        identity: Identity,
        project_id,
        title: str,
        description: str = "",
        priority: str = "MEDIUM",
        status: str = "TODO",
        due_date: Optional[datetime] = None,
        assignee_id: Optional[uuid.UUID] = None,
    ) -> Task:
        project = await self.projects.get_readable(identity, project_id)
        access = ProjectAccess.of(project)
        if assignee_id is not None and not _is_participant(access, assignee_id):
            raise ValidationError("Assignee must be the project owner or a member")

        task = Task(
            project_id=project.id,
            title=title.strip(),
            description=description or "",
            priority=priority,
            status=status,
            due_date=due_date,
            assignee_id=assignee_id,
            created_by=uuid.UUID(identity.user_id),
        )
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("task.created", task_id=task.id, project_id=str(project.id))
        return task

    async def list_tasks(
        self, identity: Identity, project_id, status: Optional[str] = None
    ) -> list[Task]:
        project = await self.projects.get_readable(identity, project_id)
        q = select(Task).where(Task.project_id == project.id)
        if status:
            q = q.where(Task.status == status)
        q = q.order_by(Task.created_at, Task.id)
        return list((await self.db.execute(q)).scalars().all())

    async def get_task(self, identity: Identity, task_id: int) -> Task:
        task = await self.load(task_id)
        require(can_read(identity, ProjectAccess.of(task.project)), "Access denied to task")
        return task

    # ─── Mutate ──────────────────────────────────────────

    async def update_task(self, identity: Identity, task_id: int, **fields) -> Task:
        """Partial update — only non-None fields are applied."""
        task = await self.load(task_id)
        access = ProjectAccess.of(task.project)
        require(can_mutate(identity, access), "Only the project owner can update tasks")

        assignee_id = fields.get("assignee_id")
        if assignee_id is not None and not _is_participant(access, assignee_id):
            raise ValidationError("Assignee must be the project owner or a member")

        for key in ("title", "description", "priority", "status", "due_date", "assignee_id"):
            value = fields.get(key)
            if value is not None:
                setattr(task, key, value.strip() if key == "title" else value)
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("task.updated", task_id=task.id)
        return task

    async def delete_task(self, identity: Identity, task_id: int) -> None:
        task = await self.load(task_id)
        require(
            can_mutate(identity, ProjectAccess.of(task.project)),
            "Only the project owner can delete tasks",
        )
        await self.db.execute(
            delete(TaskNote)
            .where(TaskNote.task_id == task.id)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.delete(task)
        await self.db.commit()
        logger.info("task.deleted", task_id=task_id)


def _is_participant(access: ProjectAccess, user_id: uuid.UUID) -> bool:
    uid = str(user_id)
    return uid == access.owner_id or uid in access.member_ids

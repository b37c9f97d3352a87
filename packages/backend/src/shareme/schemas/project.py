"""Pydantic schemas for projects, stats and documents.

Learn: Separate schemas for create/update/read keeps the API clean.
- ProjectCreate: what you POST to create a project
- ProjectUpdate: what you PUT to modify one (all optional)
- ProjectRead: what the API returns (owner, members and task counts)
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from shareme.schemas.common import CamelModel, UserInfo

PRIORITY_PATTERN = r"^(URGENT|HIGH|MEDIUM|LOW)$"
PROJECT_STATUS_PATTERN = r"^(ACTIVE|COMPLETED|ARCHIVED)$"


class ProjectCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field(default="", max_length=1000)
    priority: str = Field(default="MEDIUM", pattern=PRIORITY_PATTERN)
    deadline: Optional[datetime] = None
    member_emails: list[str] = Field(default_factory=list)


class ProjectUpdate(CamelModel):
    """Partial update — only non-None fields are applied."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    priority: Optional[str] = Field(None, pattern=PRIORITY_PATTERN)
    status: Optional[str] = Field(None, pattern=PROJECT_STATUS_PATTERN)
    deadline: Optional[datetime] = None
    member_emails: Optional[list[str]] = None


class ProjectRead(CamelModel):
    id: uuid.UUID
    name: str
    description: str
    priority: str
    status: str
    deadline: Optional[datetime]
    owner: UserInfo
    members: list[UserInfo]
    created_at: datetime
    updated_at: datetime
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0

    @classmethod
    def build(cls, project, counts=None) -> "ProjectRead":
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            priority=project.priority,
            status=project.status,
            deadline=project.deadline,
            owner=UserInfo.model_validate(project.owner),
            members=[UserInfo.model_validate(m) for m in project.members],
            created_at=project.created_at,
            updated_at=project.updated_at,
            total_tasks=counts.total if counts else 0,
            completed_tasks=counts.completed if counts else 0,
            in_progress_tasks=counts.in_progress if counts else 0,
        )


class ProjectStats(CamelModel):
    total_projects: int
    completed_tasks: int
    in_progress_tasks: int


class DocumentRead(CamelModel):
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    content_type: Optional[str]
    size_bytes: int
    uploaded_by: uuid.UUID
    uploaded_at: datetime

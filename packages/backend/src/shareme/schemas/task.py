"""Pydantic schemas for tasks and personal task notes."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from shareme.schemas.common import CamelModel
from shareme.schemas.project import PRIORITY_PATTERN

TASK_STATUS_PATTERN = r"^(TODO|IN_PROGRESS|COMPLETED)$"


# ─── Tasks ───────────────────────────────────────────────

class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="")
    priority: str = Field(default="MEDIUM", pattern=PRIORITY_PATTERN)
    status: str = Field(default="TODO", pattern=TASK_STATUS_PATTERN)
    due_date: Optional[datetime] = None
    assignee_id: Optional[uuid.UUID] = None


class TaskUpdate(CamelModel):
    """Partial update — only non-None fields are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[str] = Field(None, pattern=PRIORITY_PATTERN)
    status: Optional[str] = Field(None, pattern=TASK_STATUS_PATTERN)
    due_date: Optional[datetime] = None
    assignee_id: Optional[uuid.UUID] = None


class TaskRead(CamelModel):
    id: int
    project_id: uuid.UUID
    title: str
    description: str
    status: str
    priority: str
    due_date: Optional[datetime]
    assignee_id: Optional[uuid.UUID]
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime


# ─── Task notes ──────────────────────────────────────────

class TaskNoteRequest(CamelModel):
    task_id: int
    note_name: Optional[str] = Field(None, max_length=200)
    note_content: str = Field(default="", max_length=20000)
    reminder_tags: list[str] = Field(default_factory=list)


class TaskNoteRead(CamelModel):
    """A note, or the empty shape returned when there is nothing to show."""
    id: Optional[uuid.UUID] = None
    task_id: Optional[int] = None
    user_id: Optional[uuid.UUID] = None
    note_name: Optional[str] = None
    note_content: str = ""
    reminder_tags: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def empty(cls, task_id: Optional[int] = None) -> "TaskNoteRead":
        return cls(task_id=task_id)

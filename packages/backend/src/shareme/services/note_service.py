"""Task note service — private per-user notes on tasks.

Learn: A note belongs to exactly one (task, author) pair and is only ever
visible to its author, even the project owner cannot read it.

Information hiding: when the task does not exist, or the caller cannot
read the task's project, the note methods return None (or False) rather
than raising. The API turns that into an empty note with status 200, so
the note endpoints never tell a caller whether a task exists or whether
they were denied. That is an explicit branch here, not a side effect of
swallowing errors: real failures still propagate.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.auth.jwt import Identity
from shareme.auth.policy import NoteAccess, can_access_note
from shareme.db.models import TaskNote
from shareme.services.task_service import TaskService

logger = structlog.get_logger()


def clean_tags(tags: Optional[list[str]]) -> list[str]:
    """Strip, drop blanks and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags or []:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class NoteService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.tasks = TaskService(db)

    async def _own_note(self, identity: Identity, task_id: int) -> Optional[TaskNote]:
        q = select(TaskNote).where(
            TaskNote.task_id == task_id,
            TaskNote.user_id == uuid.UUID(identity.user_id),
        )
        note = (await self.db.execute(q)).scalars().first()
        if note is not None and not can_access_note(identity, NoteAccess.of(note)):
            return None
        return note

    async def get_note(self, identity: Identity, task_id: int) -> Optional[TaskNote]:
        if not await self.tasks.is_accessible(identity, task_id):
            logger.debug("note.hidden", task_id=task_id, user_id=identity.user_id)
            return None
        return await self._own_note(identity, task_id)

    async def save_note(
        self,
        identity: Identity,
        task_id: int,
        note_content: str,
        note_name: Optional[str] = None,
        reminder_tags: Optional[list[str]] = None,
    ) -> Optional[TaskNote]:
        """Create or replace the caller's note on a task."""
        if not await self.tasks.is_accessible(identity, task_id):
            logger.debug("note.hidden", task_id=task_id, user_id=identity.user_id)
            return None

        note = await self._own_note(identity, task_id)
        if note is None:
            note = TaskNote(task_id=task_id, user_id=uuid.UUID(identity.user_id))
            self.db.add(note)
        note.note_name = note_name
        note.note_content = note_content
        note.reminder_tags = clean_tags(reminder_tags)
        await self.db.commit()
        await self.db.refresh(note)
        logger.info("note.saved", task_id=task_id, user_id=identity.user_id)
        return note

    async def delete_note(self, identity: Identity, task_id: int) -> bool:
        if not await self.tasks.is_accessible(identity, task_id):
            return False
        note = await self._own_note(identity, task_id)
        if note is None:
            return False
        await self.db.delete(note)
        await self.db.commit()
        logger.info("note.deleted", task_id=task_id, user_id=identity.user_id)
        return True

    async def has_note(self, identity: Identity, task_id: int) -> bool:
        return await self.get_note(identity, task_id) is not None

    # ─── Listing ─────────────────────────────────────────

    async def list_notes(self, identity: Identity) -> list[TaskNote]:
        q = (
            select(TaskNote)
            .where(TaskNote.user_id == uuid.UUID(identity.user_id))
            .order_by(TaskNote.updated_at.desc(), TaskNote.task_id)
        )
        return list((await self.db.execute(q)).scalars().all())

    async def list_by_tag(self, identity: Identity, tag: str) -> list[TaskNote]:
        # Tags are a JSON list; filtering in Python keeps this portable
        tag = tag.strip()
        return [n for n in await self.list_notes(identity) if tag in (n.reminder_tags or [])]

    async def list_tags(self, identity: Identity) -> list[str]:
        tags = set()
        for note in await self.list_notes(identity):
            tags.update(note.reminder_tags or [])
        return sorted(tags)

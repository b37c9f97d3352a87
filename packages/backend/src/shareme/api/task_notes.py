"""Task note API — private notes and reminder tags on tasks.

Learn: These endpoints answer 200 with an empty note (or `false`) when
the task is missing or the caller cannot see it. That hides whether a
task exists from people outside the project. The bearer token itself is
still checked by the gate, so a bad token is a 401 like everywhere else.

- GET    /task-notes/task/:taskId         → my note on a task
- POST   /task-notes                      → create or replace my note
- DELETE /task-notes/task/:taskId         → delete my note
- GET    /task-notes                      → all my notes
- GET    /task-notes/tag/:tag             → my notes with a tag
- GET    /task-notes/tags                 → every tag I use
- GET    /task-notes/task/:taskId/exists  → do I have a note on this task?
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shareme.auth.dependencies import get_current_identity
from shareme.auth.jwt import Identity
from shareme.db.engine import get_db
from shareme.schemas.task import TaskNoteRead, TaskNoteRequest
from shareme.services.note_service import NoteService

router = APIRouter(prefix="/task-notes")


def _note_svc(db: AsyncSession = Depends(get_db)) -> NoteService:
    return NoteService(db)


@router.get("/task/{task_id}", response_model=TaskNoteRead)
async def get_task_note(
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    svc: NoteService = Depends(_note_svc),
):
    note = await svc.get_note(identity, task_id)
    if note is None:
        return TaskNoteRead.empty(task_id)
    return note


@router.post("", response_model=TaskNoteRead)
async def save_task_note(
    body: TaskNoteRequest,
    identity: Identity = Depends(get_current_identity),
    svc: NoteService = Depends(_note_svc),
):
    note = await svc.save_note(
        identity,
        body.task_id,
        note_content=body.note_content,
        note_name=body.note_name,
        reminder_tags=body.reminder_tags,
    )
    if note is None:
        return TaskNoteRead.empty(body.task_id)
    return note


@router.delete("/task/{task_id}", response_model=TaskNoteRead)
async def delete_task_note(
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    svc: NoteService = Depends(_note_svc),
):
    # Same empty shape whether a note was deleted or there was none to see
    await svc.delete_note(identity, task_id)
    return TaskNoteRead.empty(task_id)


@router.get("", response_model=list[TaskNoteRead])
async def list_task_notes(
    identity: Identity = Depends(get_current_identity),
    svc: NoteService = Depends(_note_svc),
):
    return await svc.list_notes(identity)


@router.get("/tag/{tag}", response_model=list[TaskNoteRead])
async def list_task_notes_by_tag(
    tag: str,
    identity: Identity = Depends(get_current_identity),
    svc: NoteService = Depends(_note_svc),
):
    return await svc.list_by_tag(identity, tag)


@router.get("/tags", response_model=list[str])
async def list_tags(
    identity: Identity = Depends(get_current_identity),
    svc: NoteService = Depends(_note_svc),
):
    return await svc.list_tags(identity)


@router.get("/task/{task_id}/exists", response_model=bool)
async def has_task_note(
    task_id: int,
    identity: Identity = Depends(get_current_identity),
    svc: NoteService = Depends(_note_svc),
):
    return await svc.has_note(identity, task_id)

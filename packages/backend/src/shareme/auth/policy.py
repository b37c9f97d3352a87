"""Authorization policy — who may do what to which resource.

Learn: Pure functions over small immutable snapshots. The data layer
loads the resource, builds a snapshot, and asks one predicate:

    can_read             owner or member        (get, list tasks, add tasks)
    can_mutate           owner only             (update, delete)
    can_upload_document  owner or member
    can_access_note      the note's author only (no membership fallthrough)

A False answer becomes a 403 via require(), except on the task-note
endpoints, which deliberately answer with an empty note instead so a
caller cannot probe which tasks or notes exist.
"""

from dataclasses import dataclass, field

from shareme.auth.jwt import Identity
from shareme.errors import AuthorizationError


@dataclass(frozen=True)
class ProjectAccess:
    """Ownership and membership of one project."""

    owner_id: str
    member_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, project) -> "ProjectAccess":
        return cls(
            owner_id=str(project.owner_id),
            member_ids=frozenset(str(m.id) for m in project.members),
        )


@dataclass(frozen=True)
class NoteAccess:
    author_id: str

    @classmethod
    def of(cls, note) -> "NoteAccess":
        return cls(author_id=str(note.user_id))


def can_read(identity: Identity, project: ProjectAccess) -> bool:
    return identity.user_id == project.owner_id or identity.user_id in project.member_ids


def can_mutate(identity: Identity, project: ProjectAccess) -> bool:
    return identity.user_id == project.owner_id


def can_upload_document(identity: Identity, project: ProjectAccess) -> bool:
    return can_read(identity, project)


def can_access_note(identity: Identity, note: NoteAccess) -> bool:
    return identity.user_id == note.author_id


def require(allowed: bool, message: str = "Access denied") -> None:
    """Raise a 403 unless the predicate allowed the action."""
    if not allowed:
        raise AuthorizationError(message)

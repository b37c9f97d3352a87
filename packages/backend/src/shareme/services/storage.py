"""Document storage — where uploaded project files end up.

Learn: Storage is an outside collaborator; the rest of the app only
needs save() and delete(). This implementation writes to a local
directory. Stored names are fresh UUIDs that keep the original
extension, so user-supplied file names never become paths.
"""

import uuid
from dataclasses import dataclass
from pathlib import Path

import structlog
from fastapi import UploadFile

from shareme.errors import PayloadTooLargeError, ValidationError

logger = structlog.get_logger()

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class StoredFile:
    file_name: str
    size_bytes: int


class DocumentStorage:
    def __init__(self, upload_dir: str, max_bytes: int):
        self.root = Path(upload_dir).resolve()
        self.max_bytes = max_bytes

    def _target(self, original_name: str) -> Path:
        suffix = Path(original_name).suffix.lower()
        if not suffix[1:].isalnum():
            suffix = ""
        return self.root / f"{uuid.uuid4()}{suffix}"

    async def save(self, upload: UploadFile) -> StoredFile:
        if not upload.filename:
            raise ValidationError("Uploaded file must have a name")
        self.root.mkdir(parents=True, exist_ok=True)
        target = self._target(upload.filename)

        size = 0
        try:
            with target.open("wb") as out:
                while chunk := await upload.read(CHUNK_SIZE):
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise PayloadTooLargeError(
                            f"File exceeds the {self.max_bytes} byte limit"
                        )
                    out.write(chunk)
        except Exception:
            target.unlink(missing_ok=True)
            raise

        logger.info("storage.saved", file_name=target.name, size_bytes=size)
        return StoredFile(file_name=target.name, size_bytes=size)

    def delete(self, file_name: str) -> None:
        path = (self.root / file_name).resolve()
        if path.parent != self.root:
            logger.warning("storage.delete_outside_root", file_name=file_name)
            return
        path.unlink(missing_ok=True)

"""Attachment storage: files on disk, metadata in the database.

Files are kept in a single flat upload directory under generated names. A
metadata row is only written after its file is complete, and deletion removes
the file before the row, so a row never points at a file that was never
written.
"""

import logging
import os
import re
import secrets
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from devteam.config import settings
from devteam.database import exists
from devteam.models.attachment import Attachment as AttachmentModel
from devteam.models.task import Task as TaskModel
from devteam.services.errors import InternalFailureError, NotFoundError
from devteam.services.multipart import MultipartPart, validate_part

logger = logging.getLogger(__name__)

_SAFE_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


def generate_stored_name(filename: str) -> str:
    """Build a collision-resistant on-disk name keeping the original extension.

    Example: ``"report.pdf"`` -> ``"1760781234567-3f9c2a7b1e0d4c5a.pdf"``.
    Extensions that are not plain alphanumerics are dropped.
    """
    extension = Path(filename).suffix
    if not _SAFE_EXTENSION_RE.match(extension):
        extension = ""
    return f"{time.time_ns() // 1_000_000}-{secrets.token_hex(8)}{extension}"


@dataclass
class DownloadTarget:
    """A stored file ready to be streamed back to a client."""

    path: Path
    filename: str
    content_type: str


class AttachmentStorage:
    """Reads and writes attachment files inside one upload directory."""

    def __init__(self, upload_root: Path, url_prefix: str = "/uploads"):
        """Initialize the storage.

        Args:
            upload_root: Directory holding every stored file
            url_prefix: Public path the upload directory is served under
        """
        self.upload_root = upload_root
        self.url_prefix = url_prefix.rstrip("/")
        self.upload_root.mkdir(parents=True, exist_ok=True)

    def path_for(self, stored_name: str) -> Path:
        # Only the final component is honoured so a record can never escape the root
        return self.upload_root / Path(stored_name).name

    def url_for(self, stored_name: str) -> str:
        return f"{self.url_prefix}/{stored_name}"

    def write(self, stored_name: str, data: bytes) -> int:
        """Write ``data`` to ``stored_name`` atomically.

        The bytes go to a hidden temporary file first and are renamed into place
        once flushed to disk, so readers never see a partial file.

        Returns:
            Number of bytes written.

        Raises:
            InternalFailureError: If the file cannot be written.
        """
        target = self.path_for(stored_name)
        temp_path = target.with_name(f".{target.name}.part")
        try:
            with open(temp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, target)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise InternalFailureError(f"Failed to store file: {e}") from e

        logger.info(f"Stored {len(data)} bytes as {target.name}")
        return len(data)

    def exists(self, stored_name: str) -> bool:
        return self.path_for(stored_name).is_file()

    def remove(self, stored_name: str) -> bool:
        """Delete a stored file.

        Returns:
            True if a file was removed, False if it was already gone.

        Raises:
            InternalFailureError: If the file exists but cannot be removed.
        """
        path = self.path_for(stored_name)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning(f"Stored file {path.name} was already missing")
            return False
        except OSError as e:
            raise InternalFailureError(f"Failed to delete file: {e}") from e

        logger.info(f"Removed stored file {path.name}")
        return True


def get_attachment_storage() -> AttachmentStorage:
    """FastAPI dependency returning storage rooted at the configured directory."""
    return AttachmentStorage(settings.uploads_base_path, settings.uploads_url_prefix)


# =============================================================================
# Record Operations
# =============================================================================


def parse_id(value: str | UUID, detail: str) -> UUID:
    """Coerce a path identifier to a UUID.

    An identifier that is not a UUID cannot name an existing row, so it is
    reported as missing rather than as invalid input.
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(value)
    except ValueError:
        raise NotFoundError(detail) from None


def ensure_task_exists(db: Session, task_id: str | UUID) -> UUID:
    task_uuid = parse_id(task_id, "Task not found")
    if not exists(db, TaskModel, task_uuid):
        raise NotFoundError("Task not found")
    return task_uuid


def store_uploads(
    db: Session,
    storage: AttachmentStorage,
    task_id: UUID,
    uploaded_by: UUID,
    parts: Iterable[MultipartPart],
    max_size_bytes: int,
) -> list[AttachmentModel]:
    """Persist each uploaded part as a file plus an attachment record.

    Parts are handled one at a time: validate, write the file, then commit the
    record. A failing part stops the loop; files and records already stored for
    earlier parts of the same request are kept.

    The caller is responsible for checking that the task exists, before the
    request body is read.

    Raises:
        PayloadTooLargeError: If a part exceeds ``max_size_bytes``.
        InternalFailureError: On file or database errors.
    """
    attachments = []
    for part in parts:
        validate_part(part, max_size_bytes)

        stored_name = generate_stored_name(part.filename)
        size = storage.write(stored_name, part.data)

        attachment = AttachmentModel(
            task_id=task_id,
            name=part.filename,
            stored_name=stored_name,
            url=storage.url_for(stored_name),
            content_type=part.content_type or settings.default_attachment_content_type,
            size=size,
            uploaded_by=uploaded_by,
        )
        try:
            db.add(attachment)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            storage.remove(stored_name)
            raise InternalFailureError(f"Failed to record attachment: {e}") from e

        logger.info(
            f"Attached {part.filename!r} ({size} bytes) to task {task_id} as {stored_name}"
        )
        attachments.append(attachment)

    return attachments


def list_attachments(db: Session, task_id: str | UUID) -> list[AttachmentModel]:
    task_id = ensure_task_exists(db, task_id)
    return list(
        db.scalars(
            select(AttachmentModel)
            .where(AttachmentModel.task_id == task_id)
            .order_by(AttachmentModel.uploaded_at, AttachmentModel.id)
        )
    )


def get_attachment(db: Session, attachment_id: str | UUID) -> AttachmentModel:
    attachment = db.get(AttachmentModel, parse_id(attachment_id, "Attachment not found"))
    if attachment is None:
        raise NotFoundError("Attachment not found")
    return attachment


def get_attachment_for_download(
    db: Session, storage: AttachmentStorage, attachment_id: str | UUID
) -> DownloadTarget:
    """Resolve an attachment id to its file on disk.

    Raises:
        NotFoundError: If the record or its file is missing.
    """
    attachment = get_attachment(db, attachment_id)

    if not storage.exists(attachment.stored_name):
        logger.warning(
            f"Attachment {attachment.id} points at missing file {attachment.stored_name}"
        )
        raise NotFoundError("File not found on disk")

    return DownloadTarget(
        path=storage.path_for(attachment.stored_name),
        filename=attachment.name,
        content_type=attachment.content_type,
    )


def delete_attachment(
    db: Session, storage: AttachmentStorage, attachment_id: str | UUID
) -> None:
    """Remove an attachment's file, then its record.

    A file that is already gone is not an error.

    Raises:
        NotFoundError: If the record does not exist.
        InternalFailureError: If the file cannot be removed.
    """
    attachment = get_attachment(db, attachment_id)

    storage.remove(attachment.stored_name)

    db.delete(attachment)
    db.flush()

    logger.info(f"Deleted attachment {attachment.id}")
